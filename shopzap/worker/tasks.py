"""Monitoring pipeline: render, extract, record history, alert on restock."""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from dataclasses import dataclass
from typing import Optional, Union

from shopzap import metrics
from shopzap.detect.history import HistoryUpdate, ProductHistoryStore
from shopzap.detect.rules import build_restock_message, should_alert
from shopzap.errors import (
    ExtractionFailedError,
    InvalidInputError,
    ProductNotFoundError,
    RenderError,
    ShopzapError,
)
from shopzap.ingest.adapters import get_adapter
from shopzap.ingest.extractor import FieldExtractor
from shopzap.models import ExtractionRecord, MonitoringTask, ProductHistory, product_identity

logger = logging.getLogger(__name__)


@dataclass
class ScrapeResult:
    """Extraction record plus the product's history after recording it."""

    record: ExtractionRecord
    history: Optional[ProductHistory]
    alerted: bool = False

    def to_dict(self) -> dict:
        result = self.record.to_dict()
        result["priceHistory"] = self.history.to_dict()["history"] if self.history else []
        return result


BulkItem = Union[str, dict]


class MonitorService:
    """
    Runs one extraction end to end.

    Used by the HTTP layer for on-demand requests and by the scheduler for
    recurring fires. Holds a per-product lock so that reading the previous
    observation, appending the new one and persisting happen as one step.
    """

    def __init__(self, renderer, history: ProductHistoryStore, store, dispatcher, extractor: FieldExtractor | None = None):
        self.renderer = renderer
        self.history = history
        self.store = store
        self.dispatcher = dispatcher
        self.extractor = extractor or FieldExtractor()
        # Entries disappear once no coroutine holds or waits on the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, identity: str) -> asyncio.Lock:
        lock = self._locks.get(identity)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity] = lock
        return lock

    async def scrape_product(self, url: str, selector: Optional[str] = None) -> ScrapeResult:
        """
        Extract a product page and record the observation.

        Raises:
            InvalidInputError: Missing URL, or a generic-adapter URL without selector
            ExtractionFailedError: Nothing could be extracted
            RenderError: Page could not be loaded
            PersistenceError: History could not be saved (in-memory state is kept)
        """
        if not url or not url.strip():
            raise InvalidInputError("URL is required.")
        url = url.strip()
        # Resolve before touching the browser so bad input costs nothing
        adapter = get_adapter(url, selector)

        started = time.monotonic()
        try:
            async with self.renderer.session(url) as page:
                record = await self.extractor.extract(page, adapter, selector)
        except RenderError:
            metrics.record_extraction(adapter.name, "render_error", time.monotonic() - started)
            raise
        except ExtractionFailedError:
            metrics.record_extraction(adapter.name, "failed", time.monotonic() - started)
            raise
        metrics.record_extraction(adapter.name, "success", time.monotonic() - started)

        update, alerted = await self._record(record)
        return ScrapeResult(record=record, history=update.history, alerted=alerted)

    async def _record(self, record: ExtractionRecord) -> tuple[HistoryUpdate, bool]:
        identity = product_identity(record.source_url)
        async with self._lock_for(identity):
            update = self.history.record(identity, record.numeric_price, record.stock_status)
            previous_stock = update.previous.stock if update.previous else None

            alerted = should_alert(previous_stock, record.stock_status)
            if alerted:
                logger.info(f"Restock detected for {identity}")
                self.dispatcher.enqueue(build_restock_message(record.title, record.source_url))

            if update.appended:
                metrics.tracked_products.set(len(self.history))
                await self.store.save_products(self.history.snapshot())
        return update, alerted

    async def scrape_many(self, items: list[BulkItem]) -> list[dict]:
        """
        Extract several URLs concurrently.

        Items are URLs or {"url", "selector"} dicts. Failures are reported
        per item as {"url", "error"}; results keep the input order.
        """

        async def scrape_one(item: BulkItem) -> dict:
            url = item if isinstance(item, str) else (item.get("url") or "")
            selector = None if isinstance(item, str) else item.get("selector")
            try:
                result = await self.scrape_product(url, selector)
            except ShopzapError as e:
                logger.warning(f"Bulk scrape failed for {url}: {e}")
                return {"url": url, "error": str(e)}
            return result.to_dict()

        return list(await asyncio.gather(*(scrape_one(item) for item in items)))

    async def run_task(self, task: MonitoringTask) -> ScrapeResult:
        """Scheduler entry point; the result is logged and discarded by the caller."""
        result = await self.scrape_product(task.url, task.selector)
        logger.info(
            f"Scheduled extraction for {task.url}: price={result.record.numeric_price} "
            f"stock={result.record.stock_status.value if result.record.stock_status else None}"
        )
        return result

    def get_history(self, url: str) -> ProductHistory:
        identity = product_identity(url)
        history = self.history.get(identity)
        if history is None:
            raise ProductNotFoundError(identity)
        return history
