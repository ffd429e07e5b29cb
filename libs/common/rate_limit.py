"""Rate limiting configuration for the webshop API.

Uses slowapi with a Redis backend (REDIS_URL) so limits hold across worker
processes; ``memory://`` keeps local runs and tests self-contained.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from jose import JWTError, jwt
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings


def _get_client_ip(request: Request) -> str:
    """
    Get client IP from request, handling proxies.

    Checks X-Forwarded-For header first (for proxied requests),
    then falls back to direct connection IP.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain (original client)
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def _get_user_or_ip(request: Request) -> str:
    """
    Rate limit by user ID if a bearer token is present, otherwise by IP.

    The token is only read for its subject here; verification happens in the
    auth dependency.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        try:
            claims = jwt.get_unverified_claims(auth_header.split(" ", 1)[1])
        except JWTError:
            claims = {}
        if claims.get("sub"):
            return f"user:{claims['sub']}"
    return f"ip:{_get_client_ip(request)}"


@lru_cache
def get_limiter() -> Limiter:
    """
    Create and return a cached Limiter instance.
    """
    settings = get_settings()

    return Limiter(
        key_func=_get_user_or_ip,
        default_limits=["100/minute"],
        storage_uri=settings.REDIS_URL,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Custom handler for rate limit exceeded errors.

    Returns a JSON response with clear error message and retry-after header.
    """
    retry_after = exc.detail.split("per")[-1].strip() if exc.detail else "1 minute"

    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded. Try again in {retry_after}.",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


# Decorator shortcuts for the limited storefront endpoints
def coupon_limit(func: Callable) -> Callable:
    """Coupon validation is called on every cart edit (20/minute)."""
    return limiter.limit("20/minute")(func)


def checkout_limit(func: Callable) -> Callable:
    """Order creation / payment intent (5/minute)."""
    return limiter.limit("5/minute")(func)


def gift_card_limit(func: Callable) -> Callable:
    """Gift card validation and redemption, guards code guessing (10/minute)."""
    return limiter.limit("10/minute")(func)


def alert_limit(func: Callable) -> Callable:
    """Price alert sign-ups (10/hour)."""
    return limiter.limit("10/hour")(func)


def newsletter_limit(func: Callable) -> Callable:
    """Newsletter sign-ups (10/hour)."""
    return limiter.limit("10/hour")(func)


def contact_limit(func: Callable) -> Callable:
    """Contact form messages (10/hour)."""
    return limiter.limit("10/hour")(func)
