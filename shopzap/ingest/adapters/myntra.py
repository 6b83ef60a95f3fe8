"""Myntra product and search adapters."""

from __future__ import annotations

import re
from functools import partial
from typing import Optional

from shopzap.ingest.adapters.base import (
    FieldSpec,
    SearchAdapter,
    SiteAdapter,
    clean_text,
    normalize_stock,
)
from shopzap.models import StockStatus

OUT_OF_STOCK = re.compile(r"out of stock", re.IGNORECASE)


def sizes_to_stock(sizes_text: Optional[str]) -> Optional[StockStatus]:
    """Listings carry no stock label; a listing with sizes on offer is in stock."""
    return StockStatus.IN_STOCK if clean_text(sizes_text) else StockStatus.OUT_OF_STOCK


MyntraAdapter = SiteAdapter(
    name="myntra",
    hosts=("myntra.com",),
    fields=(
        FieldSpec("title", ".pdp-title"),
        FieldSpec("raw_price", ".pdp-price .pdp-discounted-price"),
        FieldSpec("stock_status", ".pdp-size-buttons", partial(normalize_stock, out_of_stock=OUT_OF_STOCK)),
        FieldSpec("seller", ".supplier-info a"),
    ),
)

MyntraSearch = SearchAdapter(
    site="myntra",
    url_template="https://www.myntra.com/{keyword}",
    item_locator=".product-base",
    fields=(
        ("brand", ".product-productMetaInfo .product-brand", None),
        ("product", ".product-productMetaInfo .product-product", None),
        ("raw_price", ".product-price .product-discountedPrice", None),
        ("sizes", ".product-sizes", None),
        ("url", "a", "href"),
    ),
    title_fields=("brand", "product"),
    stock_field="sizes",
    stock_rule=sizes_to_stock,
)
