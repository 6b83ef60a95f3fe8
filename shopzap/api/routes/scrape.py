"""On-demand product extraction endpoints."""

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from shopzap.api.deps import enforce_rate_limit, get_context, require_api_key
from shopzap.context import MonitorContext
from shopzap.errors import (
    ExtractionFailedError,
    InvalidInputError,
    PersistenceError,
    RenderError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["scrape"], dependencies=[Depends(require_api_key), Depends(enforce_rate_limit)])


class ScrapeRequest(BaseModel):
    url: Optional[str] = None
    selector: Optional[str] = None


class BulkScrapeItem(BaseModel):
    url: str
    selector: Optional[str] = None


class BulkScrapeRequest(BaseModel):
    urls: Optional[List[Union[str, BulkScrapeItem]]] = None


@router.post("/scrape")
async def scrape(payload: ScrapeRequest, context: MonitorContext = Depends(get_context)):
    """Extract one product page and return its fields with the price history."""
    if not payload.url:
        raise HTTPException(status_code=400, detail="URL is required.")

    try:
        result = await context.service.scrape_product(payload.url, payload.selector)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RenderError as e:
        logger.error(f"Scraping error for {payload.url}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to scrape data. {e}")
    except ExtractionFailedError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        logger.error(f"Could not persist history for {payload.url}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save price history. {e}")

    return result.to_dict()


@router.post("/bulk-scrape")
async def bulk_scrape(payload: BulkScrapeRequest, context: MonitorContext = Depends(get_context)):
    """Extract several product pages; failures are reported per URL."""
    if not payload.urls:
        raise HTTPException(status_code=400, detail="An array of URLs is required for bulk scraping.")

    items = [item if isinstance(item, str) else item.model_dump() for item in payload.urls]
    return await context.service.scrape_many(items)
