"""Field extraction from a rendered product page using a site adapter."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from shopzap.errors import ExtractionFailedError, InvalidInputError
from shopzap.ingest.adapters import FieldSpec, SiteAdapter, parse_price
from shopzap.models import ExtractionRecord

logger = logging.getLogger(__name__)


class PageHandle(Protocol):
    """What the extractor needs from a rendered page."""

    url: str

    async def text_of(self, locator: str) -> Optional[str]: ...

    async def evaluate(self, locator: str) -> Optional[str]: ...


async def extract_field(page: PageHandle, spec: FieldSpec) -> Optional[Any]:
    """
    Read and post-process one field.

    Any failure (element missing, empty text, renderer error, post-processing
    error) yields None for this field only.
    """
    try:
        if spec.evaluate:
            text = await page.evaluate(spec.locator)
        else:
            text = await page.text_of(spec.locator)
        if not text:
            return None
        return spec.postprocess(text)
    except Exception as e:
        logger.debug(f"Field '{spec.name}' not extracted from {page.url}: {type(e).__name__}: {e}")
        return None


class FieldExtractor:
    """Turns a rendered page into an ExtractionRecord."""

    async def extract(
        self,
        page: PageHandle,
        adapter: SiteAdapter,
        selector: Optional[str] = None,
    ) -> ExtractionRecord:
        """
        Extract every field the adapter declares.

        Args:
            page: Rendered page handle
            adapter: Site adapter resolved for the page URL
            selector: Caller selector, required by the generic adapter

        Returns:
            ExtractionRecord with at least one field present

        Raises:
            InvalidInputError: Generic adapter without a selector
            ExtractionFailedError: No field could be read
        """
        if adapter.requires_selector:
            if not selector:
                raise InvalidInputError("Selector is required for default scraping.")
            adapter = adapter.with_selector(selector)

        values: dict[str, Any] = {}
        for spec in adapter.fields:
            values[spec.name] = await extract_field(page, spec)

        record = ExtractionRecord(source_url=page.url, adapter=adapter.name, **values)
        if record.raw_price is not None:
            record.numeric_price = parse_price(record.raw_price)

        if not record.has_any_field():
            logger.warning(f"No fields extracted from {page.url} with adapter '{adapter.name}'")
            raise ExtractionFailedError(page.url)

        missing = [name for name, value in values.items() if value is None]
        if missing:
            record.error_message = f"Missing fields: {', '.join(missing)}"

        logger.info(
            f"Extracted {page.url} via '{adapter.name}': "
            f"price={record.numeric_price} stock={record.stock_status.value if record.stock_status else None}"
        )
        return record
