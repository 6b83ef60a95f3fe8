"""Stock alert rule."""

from typing import Optional

from shopzap.models import StockStatus


def should_alert(previous: Optional[StockStatus], current: Optional[StockStatus]) -> bool:
    """
    Check whether a stock transition is a restock.

    Only OUT_OF_STOCK -> IN_STOCK fires. Unknown or missing state on either
    side never fires.
    """
    return previous == StockStatus.OUT_OF_STOCK and current == StockStatus.IN_STOCK


def build_restock_message(title: Optional[str], url: str) -> str:
    return f"Stock Alert: {title or url} is now IN STOCK! \n{url}"
