# backend/app/middleware/rate_limit.py
"""
Rate limiting for the API using slowapi.

Limits are configured in app/services/constants.py and applied per
endpoint type (writes, health probes); everything else gets the default.

Key by: Client IP address
Storage: In-memory (single-instance deployments)

Usage:
    from app.middleware.rate_limit import limiter, RATE_LIMIT_WRITE

    @router.post("/reward")
    @limiter.limit(RATE_LIMIT_WRITE)
    def create_reward(request: Request, ...):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.config import settings
from app.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_WRITE,
    RATE_LIMIT_HEALTH,
)
from app.utils.context import get_correlation_id

logger = logging.getLogger(__name__)

# Seconds a throttled client is told to wait
RETRY_AFTER_SECONDS = 60


# =============================================================================
# LIMITER INSTANCE
# =============================================================================

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=settings.rate_limit_enabled,
)


# =============================================================================
# RATE LIMIT EXCEEDED HANDLER
# =============================================================================

async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """429 with the same body shape as every other API error, plus Retry-After."""
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"

    logger.warning(
        f"Rate limit exceeded for {get_remote_address(request)} on {request.url.path}: {limit_info}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitError",
            "message": f"Too many requests. {limit_info}",
            "details": {"retry_after": RETRY_AFTER_SECONDS},
            "correlation_id": get_correlation_id(),
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_HEALTH",
]
