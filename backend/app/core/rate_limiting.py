"""Per-client rate limiting for the form webhook (slowapi).

Every accepted form submission costs one or two paid generation calls, so
the form endpoint is throttled by client IP. The order webhook is not
limited: the shop retries failed deliveries and each one must get through.

Usage in routers:
    @router.post("/form/{plan_variant}")
    @limiter.limit(settings.rate_limit_forms)
    async def form_webhook(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.core.config import settings
from app.core.responses import ErrorDetail, ErrorResponse

_DEFAULT_RETRY_AFTER_SECONDS = 60

# In-memory counters; the service runs as a single process
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Length of the exceeded limit's window, e.g. 60 for "30/minute"."""
    try:
        return int(exc.limit.limit.get_expiry())
    except (AttributeError, TypeError, ValueError):
        return _DEFAULT_RETRY_AFTER_SECONDS


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Return 429 RATE_LIMITED in the standard error envelope."""
    return JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="RATE_LIMITED",
                message=f"Rate limit exceeded: {exc.detail}",
            )
        ).model_dump(),
        headers={"Retry-After": str(_retry_after_seconds(exc))},
    )
