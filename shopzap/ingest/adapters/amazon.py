"""Amazon product and search adapters."""

from __future__ import annotations

import re
from functools import partial

from shopzap.ingest.adapters.base import (
    FieldSpec,
    SearchAdapter,
    SiteAdapter,
    clean_text,
    normalize_stock,
)

# "Currently unavailable." is Amazon's wording for an out-of-stock listing
OUT_OF_STOCK = re.compile(r"currently unavailable|out of stock", re.IGNORECASE)

AmazonAdapter = SiteAdapter(
    name="amazon",
    hosts=("amazon.in", "amazon.com"),
    fields=(
        FieldSpec("title", "#productTitle"),
        FieldSpec("raw_price", ".a-price-whole"),
        FieldSpec("stock_status", "#availability span", partial(normalize_stock, out_of_stock=OUT_OF_STOCK)),
        FieldSpec("seller", "#sellerProfileTriggerId", clean_text),
    ),
)

AmazonSearch = SearchAdapter(
    site="amazon",
    url_template="https://www.amazon.in/s?k={keyword}",
    item_locator=".s-result-item",
    fields=(
        ("title", "h2 a span", None),
        ("raw_price", ".a-price-whole", None),
        ("stock", ".a-color-price", None),
        ("url", "h2 a", "href"),
    ),
    stock_rule=partial(normalize_stock, out_of_stock=OUT_OF_STOCK),
)
