"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shopzap.api.routes import products, schedules, scrape, search
from shopzap.config import settings
from shopzap.context import build_context
from shopzap.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting Shopzap monitor...")

    context = build_context(settings)
    await context.start()
    app.state.context = context
    logger.info(
        f"Monitor ready: {len(context.history)} tracked products, "
        f"{context.scheduler.active_count} scheduled tasks"
    )

    yield

    logger.info("Shutting down...")
    await context.close()
    app.state.context = None
    logger.info("Shutdown complete")


app = FastAPI(
    title="Shopzap Scraper API",
    description="Monitor e-commerce product pages for price and stock changes",
    version="0.1.0",
    lifespan=lifespan,
)

instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics", "/health"],
)
instrumentator.instrument(app).expose(app, include_in_schema=True, tags=["monitoring"])

app.include_router(scrape.router)
app.include_router(search.router)
app.include_router(schedules.router)
app.include_router(products.router)


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Shopzap Scraper API is running!"


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def run():
    uvicorn.run(
        "shopzap.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
