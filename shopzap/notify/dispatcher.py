"""Background delivery of alerts so the extraction path never waits on a webhook."""

import asyncio
import logging
from typing import Optional

from shopzap import metrics
from shopzap.config import settings

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Queue of outgoing alert messages drained by one worker task.

    enqueue() never blocks and never raises on delivery problems; the worker
    logs sink failures and moves on.
    """

    def __init__(self, sink, max_queue_size: int | None = None):
        self.sink = sink
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_queue_size or settings.notification_queue_size)
        self._worker: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")
            logger.info("Notification dispatcher started")

    def enqueue(self, message: str) -> bool:
        """Hand a message to the worker. Returns False if the queue is full."""
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.error(f"Notification queue full, dropping alert: {message[:80]}")
            metrics.record_stock_alert("dropped")
            return False
        return True

    async def _deliver(self, message: str) -> None:
        try:
            delivered = await self.sink.notify(message)
        except Exception as e:
            logger.error(f"Notification sink raised: {type(e).__name__}: {e}", exc_info=True)
            delivered = False
        metrics.record_stock_alert("sent" if delivered else "failed")

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self._deliver(message)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Deliver everything queued so far (used on shutdown and in tests)."""
        if self._worker is not None and not self._worker.done():
            await self._queue.join()
            return
        while not self._queue.empty():
            message = self._queue.get_nowait()
            await self._deliver(message)
            self._queue.task_done()

    async def stop(self) -> None:
        await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        close = getattr(self.sink, "close", None)
        if close is not None:
            await close()
