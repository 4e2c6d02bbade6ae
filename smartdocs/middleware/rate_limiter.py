"""
Rate Limiting Middleware

Protects API endpoints from abuse using SlowAPI with Redis backend.
Limits are keyed on the caller's API key, or the client IP for anonymous
requests, with separate budgets for chat, generation, auth and uploads.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, status
from fastapi.responses import JSONResponse
from smartdocs.config import settings
from smartdocs.core.permissions import ADMIN_RATE_LIMITS
from smartdocs.utils.sanitize import get_safe_api_key_display
import logging

logger = logging.getLogger(__name__)


def get_api_key_from_request(request: Request) -> str:
    """
    Bearer API key of the request, or None for anonymous calls
    """
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer ") and auth[7:]:
        return auth[7:]
    return None


def rate_limit_key(request: Request) -> str:
    """
    Generate rate limit key based on API key or IP

    Format: "api_key:{key}" or "ip:{address}"
    """
    api_key = get_api_key_from_request(request)
    if api_key:
        return f"api_key:{api_key}"
    return f"ip:{get_remote_address(request)}"


# Initialize rate limiter with Redis backend
limiter = Limiter(
    key_func=rate_limit_key,
    storage_uri=settings.REDIS_URL if settings.RATE_LIMIT_ENABLED else "memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
    headers_enabled=False,
)


def custom_rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    429 with a Retry-After header

    The API key is reduced to its prefix before logging.
    """
    retry_after = "60"
    if getattr(exc, "headers", None):
        retry_after = exc.headers.get("Retry-After", retry_after)

    api_key = get_api_key_from_request(request)
    caller = get_safe_api_key_display(api_key) if api_key else get_remote_address(request)

    logger.warning(
        f"Rate limit exceeded for {caller} "
        f"on {request.url.path}"
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "detail": {
                "error": "rate_limit_exceeded",
                "message": "Too many requests. Please slow down.",
                "retry_after": int(retry_after),
                "limit": str(exc.detail),
                "endpoint": request.url.path,
            }
        },
        headers={"Retry-After": retry_after},
    )


# Rate limit decorators for different endpoints

def chat_rate_limit():
    """Rate limit for conversation endpoints (default 20/minute)"""
    return limiter.limit(settings.RATE_LIMIT_CHAT)


def generation_rate_limit():
    """Rate limit for document generation endpoints (default 10/minute)"""
    return limiter.limit(settings.RATE_LIMIT_GENERATION)


def upload_rate_limit():
    """Rate limit for file upload and feedback attachment endpoints"""
    return limiter.limit(settings.RATE_LIMIT_UPLOAD)


def auth_rate_limit():
    """
    Rate limit for authentication endpoints

    Default: 5 requests per minute (strict to prevent brute force)
    """
    return limiter.limit(settings.RATE_LIMIT_AUTH)


def admin_rate_limit(area: str = "default"):
    """Per-admin limit for a back office area (user_management, analytics, ...)"""
    return limiter.limit(ADMIN_RATE_LIMITS.get(area, ADMIN_RATE_LIMITS["default"]))


# Middleware setup function
def setup_rate_limiting(app):
    """
    Setup rate limiting middleware

    Args:
        app: FastAPI application instance
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded_handler)
    if settings.RATE_LIMIT_ENABLED:
        logger.info("Rate limiting enabled with Redis backend")
    else:
        logger.warning("Rate limiting disabled")
