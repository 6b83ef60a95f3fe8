"""Process-lifetime wiring of the monitor's components."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from shopzap import metrics
from shopzap.config import Settings, settings
from shopzap.db.store import PersistedStore, create_store
from shopzap.detect.history import ProductHistoryStore
from shopzap.ingest.renderer import PlaywrightRenderer
from shopzap.ingest.search import SiteSearcher
from shopzap.notify.dispatcher import NotificationDispatcher
from shopzap.notify.webhook import WebhookNotifier
from shopzap.worker.scheduler import MonitorScheduler
from shopzap.worker.tasks import MonitorService

logger = logging.getLogger(__name__)


@dataclass
class MonitorContext:
    """Everything with state that lives as long as the process."""

    store: PersistedStore
    history: ProductHistoryStore
    renderer: PlaywrightRenderer
    dispatcher: NotificationDispatcher
    service: MonitorService
    searcher: SiteSearcher
    scheduler: MonitorScheduler

    async def start(self) -> None:
        """Load persisted state, rebuild triggers and start background workers."""
        self.history.load(await self.store.load_products())
        metrics.tracked_products.set(len(self.history))

        self.dispatcher.start()
        self.scheduler.restore_all(await self.store.load_tasks())
        self.scheduler.start()

    async def close(self) -> None:
        self.scheduler.shutdown()
        await self.dispatcher.stop()
        await self.renderer.shutdown()
        await self.store.close()


def build_context(
    config: Settings | None = None,
    store: Optional[PersistedStore] = None,
    renderer=None,
    notifier=None,
) -> MonitorContext:
    """Wire the components; collaborators can be swapped out for tests."""
    config = config or settings
    store = store or create_store(config)
    renderer = renderer or PlaywrightRenderer()
    history = ProductHistoryStore(limit=config.history_limit)
    dispatcher = NotificationDispatcher(
        notifier or WebhookNotifier(),
        max_queue_size=config.notification_queue_size,
    )
    service = MonitorService(renderer, history, store, dispatcher)
    scheduler = MonitorScheduler(service.run_task, store, timezone=config.scheduler_timezone)
    return MonitorContext(
        store=store,
        history=history,
        renderer=renderer,
        dispatcher=dispatcher,
        service=service,
        searcher=SiteSearcher(renderer, result_limit=config.search_result_limit),
        scheduler=scheduler,
    )
