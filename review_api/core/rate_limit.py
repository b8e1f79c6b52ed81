"""Rate limiting stage of the request pipeline.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: the pipeline depends on the abstract limiter only.
- Swap-friendly: storage backend can be replaced behind the interface.
- Standard headers: ``RateLimit-Limit``, ``RateLimit-Remaining`` and
  ``RateLimit-Reset`` on every limited response, ``Retry-After`` when
  throttled; the legacy ``X-RateLimit-*`` headers are never sent.

Rate limiting strategy:
- Global fixed-window limit per client address, after reverse-proxy
  resolution (``request.state.client_ip``).
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request, Response

from review_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from review_api.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from review_api.core.config import AppSettings
from review_api.core.errors import RateLimitAppError
from review_api.core.exception_handlers import app_error_handler
from review_api.core.proxy import UNKNOWN_ADDRESS

logger = logging.getLogger(__name__)


def build_rate_limiter(app_settings: AppSettings) -> AbstractRateLimiter:
    """Create the limiter described by the app settings."""

    return InMemoryFixedWindowRateLimiter(
        limit=app_settings.rate_limit_requests,
        window_seconds=app_settings.rate_limit_window_seconds,
    )


def build_rate_limit_key(request: Request) -> str:
    """Build the limiter key for the current request.

    Args:
        request: FastAPI request, after the client address stage ran.

    Returns:
        str: Namespaced limiter key.
    """

    client_ip = getattr(request.state, "client_ip", None)
    if not client_ip:
        client_ip = request.client.host if request.client else UNKNOWN_ADDRESS
    return f"ip:{client_ip}"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Standard ``RateLimit-*`` headers for a consume result."""

    headers = {
        "RateLimit-Limit": str(result.limit),
        "RateLimit-Remaining": str(result.remaining),
        "RateLimit-Reset": str(result.reset_after_seconds),
    }
    if result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """Consume one unit of the client's budget; answer 429 when exhausted."""

    app_settings: AppSettings = request.app.state.settings.app
    if not app_settings.rate_limit_enabled:
        return await call_next(request)

    limiter: AbstractRateLimiter = request.app.state.rate_limiter
    key = build_rate_limit_key(request)
    result = limiter.consume(key)
    headers = rate_limit_headers(result)

    if not result.allowed:
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "key_hash": _hash_limiter_key(key),
                "limit": result.limit,
                "window_s": app_settings.rate_limit_window_seconds,
                "retry_after_s": result.retry_after_seconds,
            },
        )
        error = RateLimitAppError(code="rate_limit_exceeded", message=app_settings.rate_limit_message)
        response = await app_error_handler(request, error)
        response.headers.update(headers)
        return response

    logger.debug(
        "rate_limit.allowed",
        extra={
            "key_hash": _hash_limiter_key(key),
            "limit": result.limit,
            "remaining": result.remaining,
        },
    )

    response = await call_next(request)
    for name, value in headers.items():
        response.headers[name] = value
    return response
