"""Prometheus metrics for the product monitor."""

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
app_info = Info("shopzap_monitor", "Shopzap product monitor application info")
app_info.info({"version": "0.1.0", "name": "shopzap-monitor"})

# Extraction metrics
extractions_total = Counter(
    "extractions_total",
    "Total number of product extractions",
    ["adapter", "status"],
)

extraction_duration_seconds = Histogram(
    "extraction_duration_seconds",
    "Time spent rendering and extracting a product page",
    ["adapter"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

# Alert metrics
stock_alerts_total = Counter(
    "stock_alerts_total",
    "Restock notifications by delivery status",
    ["status"],
)

# Scheduler metrics
scheduled_runs_total = Counter(
    "scheduled_runs_total",
    "Total number of scheduled extraction runs",
    ["status"],
)

scheduled_tasks = Gauge(
    "scheduled_tasks",
    "Number of scheduled monitoring tasks with a live trigger",
)

# Product metrics
tracked_products = Gauge(
    "tracked_products",
    "Number of products with recorded history",
)


def record_extraction(adapter: str, status: str, duration_seconds: float | None = None) -> None:
    """Record the outcome of one extraction."""
    extractions_total.labels(adapter=adapter, status=status).inc()
    if duration_seconds is not None:
        extraction_duration_seconds.labels(adapter=adapter).observe(duration_seconds)


def record_stock_alert(status: str) -> None:
    stock_alerts_total.labels(status=status).inc()


def record_scheduled_run(status: str) -> None:
    scheduled_runs_total.labels(status=status).inc()
