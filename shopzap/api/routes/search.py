"""Marketplace keyword search endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from shopzap.api.deps import enforce_rate_limit, get_context, require_api_key
from shopzap.context import MonitorContext
from shopzap.errors import InvalidInputError, RenderError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"], dependencies=[Depends(require_api_key), Depends(enforce_rate_limit)])


@router.get("/search")
async def search(
    site: Optional[str] = None,
    keyword: Optional[str] = None,
    context: MonitorContext = Depends(get_context),
):
    """Search a supported site and return the top listings."""
    if not site or not keyword:
        raise HTTPException(status_code=400, detail="Site and keyword are required.")

    try:
        hits = await context.searcher.search(site, keyword)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RenderError as e:
        logger.error(f"Search error on {site}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to perform search. {e}")

    if not hits:
        raise HTTPException(status_code=404, detail="No products found for the given keyword on this site.")
    return [hit.to_dict() for hit in hits]
