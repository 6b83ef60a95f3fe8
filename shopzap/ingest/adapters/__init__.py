"""Site adapter registry."""

from __future__ import annotations

from typing import Optional

from shopzap.errors import InvalidInputError
from shopzap.ingest.adapters.base import (
    FieldSpec,
    SearchAdapter,
    SiteAdapter,
    clean_text,
    normalize_stock,
    parse_price,
)
from shopzap.ingest.adapters.amazon import AmazonAdapter, AmazonSearch
from shopzap.ingest.adapters.flipkart import FlipkartAdapter, FlipkartSearch
from shopzap.ingest.adapters.myntra import MyntraAdapter, MyntraSearch
from shopzap.ingest.adapters.default import DefaultAdapter


# Checked in order, first match wins
_ADAPTERS: tuple[SiteAdapter, ...] = (
    AmazonAdapter,
    FlipkartAdapter,
    MyntraAdapter,
)
_ADAPTERS_BY_NAME = {adapter.name: adapter for adapter in _ADAPTERS}

_SEARCH_ADAPTERS = {
    "amazon": AmazonSearch,
    "flipkart": FlipkartSearch,
    "myntra": MyntraSearch,
}


def resolve_adapter_name(url: str) -> str:
    """Return the adapter name for a URL, "default" when no site matches."""
    for adapter in _ADAPTERS:
        if adapter.matches(url):
            return adapter.name
    return DefaultAdapter.name


def get_adapter(url: str, selector: Optional[str] = None) -> SiteAdapter:
    """
    Resolve the adapter for a URL, bound to the caller's selector.

    Raises:
        InvalidInputError: The URL needs the generic adapter and no selector was given.
    """
    name = resolve_adapter_name(url)
    if name != DefaultAdapter.name:
        return _ADAPTERS_BY_NAME[name]
    if not selector:
        raise InvalidInputError("Selector is required for default scraping.")
    return DefaultAdapter.with_selector(selector)


def get_search_adapter(site: str) -> SearchAdapter:
    """Return the search adapter for a site name."""
    adapter = _SEARCH_ADAPTERS.get((site or "").lower())
    if adapter is None:
        raise InvalidInputError(
            f"Search not supported for site: {site}. "
            f"Supported sites: {', '.join(_SEARCH_ADAPTERS)}"
        )
    return adapter


def list_adapters() -> list[str]:
    return [adapter.name for adapter in _ADAPTERS] + [DefaultAdapter.name]


def list_search_sites() -> list[str]:
    return list(_SEARCH_ADAPTERS)


__all__ = [
    "FieldSpec",
    "SearchAdapter",
    "SiteAdapter",
    "clean_text",
    "normalize_stock",
    "parse_price",
    "resolve_adapter_name",
    "get_adapter",
    "get_search_adapter",
    "list_adapters",
    "list_search_sites",
]
