"""FastAPI dependencies."""

from typing import Optional

from fastapi import Header, HTTPException, Request, Response, status

from shopzap.api.rate_limit import rate_limiter
from shopzap.config import settings
from shopzap.context import MonitorContext


def get_context(request: Request) -> MonitorContext:
    """The process-lifetime monitor context created at startup."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Monitor is not running",
        )
    return context


async def require_api_key(
    x_api_key: Optional[str] = Header(None, alias="x-api-key"),
) -> None:
    """
    Require a known API key in the x-api-key header.

    Raises:
        HTTPException: 401 if header missing, 403 if invalid
    """
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: x-api-key header missing.",
        )
    if x_api_key not in settings.api_key_list:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Invalid x-api-key.",
        )


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """Limit requests per client address; 429 once the window is used up."""
    client = request.client.host if request.client else "unknown"
    allowed, remaining = rate_limiter.hit(client)
    response.headers["RateLimit-Limit"] = str(rate_limiter.max_requests)
    response.headers["RateLimit-Remaining"] = str(remaining)
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Try again later.",
        )
