"""Rate limiting configuration for the API.

Uses SlowAPI with in-memory storage (suitable for single-instance deployments).
For multi-instance deployments, point RATE_LIMIT_STORAGE_URI at Redis.

Rate limits are defined per endpoint type:
- Critical: endpoints that call the provider (live feed, forced refresh)
- Low: lightweight endpoints (status, health)
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60


class RateLimits:
    """Centralized rate limit definitions."""

    # Critical - each request hits the provider
    VEHICLES = "60/minute"           # Live feed fetch, client polls every few seconds
    ADMIN_REFRESH = "2/minute"       # Counts against the monthly dataset quota

    # Low - in-memory only
    STATUS = "120/minute"
    HEALTH = "1000/minute"

    # Anything not decorated, e.g. the static map client
    DEFAULT = "200/minute"


def get_client_identifier(request: Request) -> str:
    """Key requests by the map client's address.

    Behind the reverse proxy that is the first X-Forwarded-For entry.
    """
    forwarded = request.headers.get("X-Forwarded-For", "")
    client = forwarded.split(",")[0].strip()
    return client or get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[RateLimits.DEFAULT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    retry_after = getattr(exc, "retry_after", None) or DEFAULT_RETRY_AFTER_SECONDS
    logger.warning(f"Rate limit hit by {get_client_identifier(request)} on {request.url.path} ({exc.detail})")
    return JSONResponse(
        status_code=429,
        content={
            "status": "error",
            "message": f"Too many requests ({exc.detail}), retry in {retry_after}s",
        },
        headers={"Retry-After": str(retry_after)},
    )
