"""Flipkart product and search adapters."""

from __future__ import annotations

import re
from functools import partial

from shopzap.ingest.adapters.base import FieldSpec, SearchAdapter, SiteAdapter, normalize_stock

OUT_OF_STOCK = re.compile(r"out of stock|sold out", re.IGNORECASE)

FlipkartAdapter = SiteAdapter(
    name="flipkart",
    hosts=("flipkart.com",),
    fields=(
        FieldSpec("title", "h1.yhB1K5 span"),
        FieldSpec("raw_price", "div._30jeq3._16Jk6d"),
        FieldSpec("stock_status", "div._16Jk6d", partial(normalize_stock, out_of_stock=OUT_OF_STOCK)),
        FieldSpec("seller", "div._1RLi3"),
    ),
)

FlipkartSearch = SearchAdapter(
    site="flipkart",
    url_template="https://www.flipkart.com/search?q={keyword}",
    item_locator="div._1AtVbE",
    fields=(
        ("title", "div._4rR01T", None),
        ("raw_price", "div._30jeq3", None),
        ("stock", "div.gUuXy-._16Jk6d", None),
        ("url", "a._1fQZEK", "href"),
    ),
    stock_rule=partial(normalize_stock, out_of_stock=OUT_OF_STOCK),
)
