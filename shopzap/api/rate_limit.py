"""Per-client request rate limiting for the HTTP API."""

import logging
import time
from collections import defaultdict, deque

from shopzap.config import settings

logger = logging.getLogger(__name__)


class RequestRateLimiter:
    """Sliding-window limiter keyed by client address."""

    def __init__(self, max_requests: int | None = None, window_seconds: float | None = None):
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window_seconds
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    def hit(self, client: str) -> tuple[bool, int]:
        """
        Record a request from a client.

        Returns:
            (allowed, remaining requests in the current window)
        """
        now = time.monotonic()
        hits = self._hits[client]
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

        if len(hits) >= self.max_requests:
            logger.warning(f"Rate limit exceeded for {client}")
            return False, 0

        hits.append(now)
        return True, self.max_requests - len(hits)

    def reset(self) -> None:
        self._hits.clear()


rate_limiter = RequestRateLimiter()
