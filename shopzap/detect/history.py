"""Rolling price/stock history per product."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from shopzap.config import settings
from shopzap.models import Observation, ProductHistory, StockStatus

logger = logging.getLogger(__name__)


@dataclass
class HistoryUpdate:
    """Result of recording one observation."""

    history: Optional[ProductHistory]
    previous: Optional[Observation]  # Newest observation before this update
    appended: bool


class ProductHistoryStore:
    """
    In-memory history of observations keyed by product identity.

    Each history keeps the most recent `limit` observations, oldest dropped
    first. This is the source of truth for the process; callers persist
    snapshot() after each update.
    """

    def __init__(self, limit: int | None = None):
        self.limit = limit or settings.history_limit
        self._histories: dict[str, ProductHistory] = {}

    def load(self, histories: Iterable[ProductHistory]) -> None:
        """Replace the in-memory state with persisted histories."""
        self._histories = {}
        for history in histories:
            history.observations = history.observations[-self.limit:]
            self._histories[history.identity] = history
        logger.info(f"Loaded history for {len(self._histories)} products")

    def get(self, identity: str) -> Optional[ProductHistory]:
        return self._histories.get(identity)

    def snapshot(self) -> list[ProductHistory]:
        return list(self._histories.values())

    def __len__(self) -> int:
        return len(self._histories)

    def record(
        self,
        identity: str,
        price: Optional[Decimal],
        stock: Optional[StockStatus],
        observed_at: Optional[datetime] = None,
    ) -> HistoryUpdate:
        """
        Append an observation for a product.

        A wholly empty observation (no price, no stock) is not recorded and
        does not create a history.

        Args:
            identity: Product identity
            price: Parsed price, if any
            stock: Stock status, if any
            observed_at: Observation time (defaults to now, UTC)

        Returns:
            HistoryUpdate with the post-update history and the previous observation
        """
        history = self._histories.get(identity)
        previous = history.latest if history else None

        if price is None and stock is None:
            return HistoryUpdate(history=history, previous=previous, appended=False)

        if history is None:
            history = ProductHistory(identity=identity)
            self._histories[identity] = history

        history.observations.append(
            Observation(
                price=price,
                stock=stock,
                observed_at=observed_at or datetime.now(timezone.utc),
            )
        )
        if len(history.observations) > self.limit:
            history.observations = history.observations[-self.limit:]

        return HistoryUpdate(history=history, previous=previous, appended=True)
