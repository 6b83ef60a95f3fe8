"""Generic adapter driven by a caller supplied selector."""

from __future__ import annotations

from shopzap.ingest.adapters.base import SiteAdapter

# Fields are bound per request through SiteAdapter.with_selector()
DefaultAdapter = SiteAdapter(
    name="default",
    hosts=(),
    fields=(),
    requires_selector=True,
)
