"""Rate limiting for the ingestion endpoint using slowapi."""

from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address

from app.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_hour}/hour"],
    storage_uri="memory://",
    enabled=settings.rate_limit_enabled,
)


def get_rate_limit_exceeded_handler():
    """Get rate limit exceeded handler."""
    return _rate_limit_exceeded_handler


def rate_limit_dependency(request: Request) -> None:
    """
    Rate limit dependency for FastAPI.

    Raises:
        RateLimitExceeded: If rate limit is exceeded
    """
    if not limiter.enabled:
        return
    # Evaluated by hand because the slowapi middleware is not installed;
    # ``_check_request_limit`` raises RateLimitExceeded when the limit is hit.
    limiter._check_request_limit(request, endpoint_func=None)
