"""Domain types shared by the extraction pipeline, history store and scheduler."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional


class StockStatus(str, Enum):
    """Normalized stock state of a product page."""

    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> Optional["StockStatus"]:
        """Parse a stored value, accepting the legacy "In Stock"/"Out of Stock" labels."""
        if value is None or isinstance(value, StockStatus):
            return value
        text = str(value).strip().lower().replace(" ", "_")
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN


def product_identity(url: str) -> str:
    """Key a product by its source URL."""
    return url.strip()


def _decimal_or_none(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


# Fields that count towards "something was scraped"
SCRAPABLE_FIELDS = ("title", "raw_price", "numeric_price", "stock_status", "seller", "data")


@dataclass
class ExtractionRecord:
    """Structured fields read from one rendered product page."""

    source_url: str
    adapter: str
    title: Optional[str] = None
    raw_price: Optional[str] = None
    numeric_price: Optional[Decimal] = None
    stock_status: Optional[StockStatus] = None
    seller: Optional[str] = None
    data: Optional[str] = None
    error_message: Optional[str] = None

    def has_any_field(self) -> bool:
        return any(getattr(self, name) is not None for name in SCRAPABLE_FIELDS)

    def to_dict(self) -> dict:
        return {
            "url": self.source_url,
            "adapter": self.adapter,
            "title": self.title,
            "raw_price": self.raw_price,
            "numeric_price": float(self.numeric_price) if self.numeric_price is not None else None,
            "stock": self.stock_status.value if self.stock_status else None,
            "seller": self.seller,
            "data": self.data,
            "error": self.error_message,
        }


@dataclass(frozen=True)
class Observation:
    """One timestamped price/stock sample."""

    price: Optional[Decimal]
    stock: Optional[StockStatus]
    observed_at: datetime

    def to_dict(self) -> dict:
        return {
            "price": str(self.price) if self.price is not None else None,
            "stock": self.stock.value if self.stock else None,
            "timestamp": self.observed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Observation":
        observed_at = datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))
        if observed_at.tzinfo is None:
            observed_at = observed_at.replace(tzinfo=timezone.utc)
        return cls(
            price=_decimal_or_none(data.get("price")),
            stock=StockStatus.parse(data.get("stock")),
            observed_at=observed_at,
        )


@dataclass
class ProductHistory:
    """Rolling window of observations for one product, newest last."""

    identity: str
    observations: list[Observation] = field(default_factory=list)

    @property
    def latest(self) -> Optional[Observation]:
        return self.observations[-1] if self.observations else None

    def to_dict(self) -> dict:
        return {
            "id": self.identity,
            "history": [obs.to_dict() for obs in self.observations],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProductHistory":
        return cls(
            identity=data["id"],
            observations=[Observation.from_dict(item) for item in data.get("history", [])],
        )


@dataclass
class MonitoringTask:
    """A recurring extraction of one URL on a cron-style schedule."""

    task_id: str
    url: str
    schedule: str
    selector: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.task_id,
            "url": self.url,
            "selector": self.selector,
            "frequency": self.schedule,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MonitoringTask":
        return cls(
            task_id=data["id"],
            url=data["url"],
            schedule=data["frequency"],
            selector=data.get("selector"),
        )


__all__ = [
    "StockStatus",
    "ExtractionRecord",
    "Observation",
    "ProductHistory",
    "MonitoringTask",
    "SCRAPABLE_FIELDS",
    "product_identity",
]
