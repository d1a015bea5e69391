"""
Rate limiting for key-minting endpoints using slowapi.

Registration and regeneration create new credentials, so they are limited per
client IP. Metered API usage itself is governed by each key's plan quota, not
by these limits.
"""
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from fastapi import Request, status
from fastapi.responses import JSONResponse

from celebstyle_gateway.config import settings
from celebstyle_gateway.logging_config import get_logger

logger = get_logger(__name__)


def client_rate_limit_key(request: Request) -> str:
    """
    Key function for rate limiting.

    Combines client IP and endpoint so each minting endpoint has its own budget.
    """
    return f"ip:{get_remote_address(request)}:{request.url.path}"


# Rate limit configurations (overridable via environment)
RATE_LIMITS = {
    "register": settings.register_rate_limit,
    "regenerate": settings.regenerate_rate_limit,
}


limiter = Limiter(
    key_func=client_rate_limit_key,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for rate limit exceeded errors.

    Returns the gateway's standard error shape.
    """
    logger.warning(
        "rate_limit_exceeded",
        path=request.url.path,
        client_ip=get_remote_address(request),
        limit=str(exc.detail),
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "success": False,
            "message": f"Too many requests. Limit: {exc.detail}",
        },
    )


def apply_rate_limits(app) -> None:
    """
    Apply rate limiting to FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


def register_endpoint_limit():
    """Rate limit for the register endpoint."""
    return limiter.limit(RATE_LIMITS["register"])


def regenerate_endpoint_limit():
    """Rate limit for the regenerate endpoint."""
    return limiter.limit(RATE_LIMITS["regenerate"])
