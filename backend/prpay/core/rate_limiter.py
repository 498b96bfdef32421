"""
Rate limiting for the PR Pay agent backend.
Uses SlowAPI, with Redis storage when REDIS_URL is configured.
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from prpay.core.config import settings

logger = logging.getLogger("prpay.rate_limiter")


def get_real_client_ip(request: Request) -> str:
    """
    Get the real client IP, accounting for reverse proxies.
    Checks X-Forwarded-For first, then X-Real-IP, then the direct peer.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First entry is the original client
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def get_client_identifier(request: Request) -> str:
    """Rate limit key. The API is unauthenticated, so callers are keyed by IP."""
    return f"ip:{get_real_client_ip(request)}"


def _storage_uri() -> str | None:
    if not settings.REDIS_URL:
        if settings.ENVIRONMENT.lower() == "production":
            logger.warning(
                "Rate limiting is using in-memory storage; limits won't sync across instances. "
                "Configure REDIS_URL for distributed rate limiting."
            )
        else:
            logger.info("Rate limiter using in-memory storage")
        return None

    # Mask credentials in logs
    logged_url = settings.REDIS_URL.split("@")[-1]
    logger.info(f"Rate limiter using Redis backend: {logged_url}")
    return settings.REDIS_URL


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=["1000/hour", "100/minute"],
    storage_uri=_storage_uri(),
    strategy="fixed-window",
    headers_enabled=True,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for rate limit exceeded errors.
    Returns a JSON response with retry information.
    """
    logger.warning(
        f"Rate limit exceeded for {get_client_identifier(request)} "
        f"on {request.method} {request.url.path}"
    )

    retry_after = getattr(exc, "retry_after", 60)

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Rate limit exceeded",
            "detail": f"Too many requests. Please retry after {retry_after} seconds.",
            "retry_after": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )


class RateLimits:
    """Pre-configured rate limits for different endpoint types."""

    # Agent endpoints drive paid LLM calls and payments
    AI_CHAT = "30/minute"

    API_READ = "100/minute"
    API_WRITE = "30/minute"
    API_SEARCH = "60/minute"

    OAUTH = "30/minute"
