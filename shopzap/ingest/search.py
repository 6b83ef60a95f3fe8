"""Keyword search over supported marketplaces."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from shopzap.config import settings
from shopzap.errors import InvalidInputError
from shopzap.ingest.adapters import SearchAdapter, clean_text, get_search_adapter, parse_price
from shopzap.models import StockStatus

logger = logging.getLogger(__name__)


@dataclass
class SearchHit:
    """One product listing from a search results page."""

    title: str
    raw_price: str
    numeric_price: Optional[Decimal]
    stock: Optional[StockStatus]
    url: Optional[str]

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "raw_price": self.raw_price,
            "numeric_price": float(self.numeric_price) if self.numeric_price is not None else None,
            "stock": self.stock.value if self.stock else None,
            "url": self.url,
        }


def build_hit(adapter: SearchAdapter, row: dict[str, Optional[str]]) -> Optional[SearchHit]:
    """Build a hit from a listing row; rows without a title or price are dropped."""
    title_parts = [clean_text(row.get(name)) for name in adapter.title_fields]
    title = " ".join(part for part in title_parts if part) or None
    raw_price = clean_text(row.get("raw_price"))
    if not title or not raw_price:
        return None
    return SearchHit(
        title=title,
        raw_price=raw_price,
        numeric_price=parse_price(raw_price),
        stock=adapter.stock_rule(row.get(adapter.stock_field)),
        url=row.get("url"),
    )


class SiteSearcher:
    """Runs a keyword search on a marketplace through the renderer."""

    def __init__(self, renderer, result_limit: int | None = None):
        self.renderer = renderer
        self.result_limit = result_limit or settings.search_result_limit

    async def search(self, site: str, keyword: str) -> list[SearchHit]:
        """
        Search a site and return up to result_limit listings.

        Raises:
            InvalidInputError: Missing keyword or unsupported site
            RenderError: The results page could not be loaded
        """
        if not keyword or not keyword.strip():
            raise InvalidInputError("Site and keyword are required.")
        adapter = get_search_adapter(site)
        url = adapter.build_url(keyword.strip())

        async with self.renderer.session(url) as page:
            # Read a few extra rows: sponsored/empty tiles get filtered out below
            rows = await page.collect(adapter.item_locator, adapter.locators(), self.result_limit * 2)

        hits = []
        for row in rows:
            hit = build_hit(adapter, row)
            if hit:
                hits.append(hit)
            if len(hits) >= self.result_limit:
                break

        logger.info(f"Search '{keyword}' on {adapter.site}: {len(hits)} results")
        return hits
