"""Tracked product history endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from shopzap.api.deps import get_context, require_api_key
from shopzap.context import MonitorContext
from shopzap.errors import ProductNotFoundError

router = APIRouter(prefix="/products", tags=["products"], dependencies=[Depends(require_api_key)])


@router.get("")
async def list_products(context: MonitorContext = Depends(get_context)):
    """List every tracked product with its recent observations."""
    return [history.to_dict() for history in context.history.snapshot()]


@router.get("/history")
async def get_product_history(
    url: str = Query(..., description="Product URL as it was scraped"),
    context: MonitorContext = Depends(get_context),
):
    """Get the observation history of one product."""
    try:
        history = context.service.get_history(url)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return history.to_dict()
