"""Declarative site adapter building blocks."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, Pattern
from urllib.parse import quote

from shopzap.models import StockStatus

_PRICE_JUNK = re.compile(r"[^0-9.\-]")


def clean_text(text: Optional[str]) -> Optional[str]:
    """Collapse whitespace; empty text is treated as absent."""
    if text is None:
        return None
    cleaned = " ".join(text.split())
    return cleaned or None


def parse_price(raw_price: Optional[str]) -> Optional[Decimal]:
    """
    Parse a displayed price into a Decimal.

    Everything except digits, '.' and '-' is stripped before parsing,
    so "₹1,299.00" becomes Decimal("1299.00"). Unparseable text yields None.
    """
    if not raw_price:
        return None
    cleaned = _PRICE_JUNK.sub("", raw_price)
    if not cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def normalize_stock(text: Optional[str], out_of_stock: Pattern[str]) -> Optional[StockStatus]:
    """Map observed stock text to a status; no text means no stock signal."""
    text = clean_text(text)
    if text is None:
        return None
    if out_of_stock.search(text):
        return StockStatus.OUT_OF_STOCK
    return StockStatus.IN_STOCK


@dataclass(frozen=True)
class FieldSpec:
    """One field of an adapter: where to read it and how to post-process the text."""

    name: str
    locator: str
    postprocess: Callable[[Optional[str]], Any] = clean_text
    evaluate: bool = False  # Read via a direct DOM evaluation instead of waiting for the element


@dataclass(frozen=True)
class SiteAdapter:
    """
    Named extraction strategy for one site's page structure.

    The site's out-of-stock pattern is bound into the postprocess of its
    "stock_status" field.
    """

    name: str
    hosts: tuple[str, ...]
    fields: tuple[FieldSpec, ...]
    requires_selector: bool = False

    def matches(self, url: str) -> bool:
        return any(host in url for host in self.hosts)

    def with_selector(self, selector: Optional[str]) -> "SiteAdapter":
        """Bind a caller supplied selector; only the generic adapter reads it."""
        if not self.requires_selector:
            return self
        return replace(self, fields=(FieldSpec("data", selector, clean_text, evaluate=True),))


def _no_stock_signal(text: Optional[str]) -> Optional[StockStatus]:
    return None


@dataclass(frozen=True)
class SearchAdapter:
    """Keyword search over a site's listing page."""

    site: str
    url_template: str  # "{keyword}" is replaced by the URL-quoted keyword
    item_locator: str
    fields: tuple[tuple[str, str, Optional[str]], ...]  # (name, locator, attribute)
    title_fields: tuple[str, ...] = ("title",)
    stock_field: str = "stock"
    stock_rule: Callable[[Optional[str]], Optional[StockStatus]] = _no_stock_signal

    def build_url(self, keyword: str) -> str:
        return self.url_template.format(keyword=quote(keyword, safe=""))

    def locators(self) -> dict[str, list[Optional[str]]]:
        return {name: [locator, attribute] for name, locator, attribute in self.fields}


__all__ = [
    "FieldSpec",
    "SiteAdapter",
    "SearchAdapter",
    "clean_text",
    "parse_price",
    "normalize_stock",
]
