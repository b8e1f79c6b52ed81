"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(application, HTTP, validation and unexpected) and return consistent JSON
responses with proper HTTP status codes and traceability.

Design:
- AppError subclasses → their HTTP status (400, 401, 404, 429, 500)
- Unmatched path or method → standardized 404 "not_found"
- Other HTTPException → its own status, same JSON shape
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing

Pipeline stages answer with these handlers too: the body, rate-limit and
error stages call them directly, because stages run outside the framework's
exception middleware.
"""

import logging
from typing import Any, Mapping

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from review_api.core.errors import (
    AppError,
    AuthenticationAppError,
    DatabaseConnectionError,
    NotFoundAppError,
    RateLimitAppError,
    ValidationAppError,
)
from review_api.core.logging import get_request_id

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "not_found",
    413: "payload_too_large",
    415: "unsupported_media_type",
    429: "rate_limit_exceeded",
}


def build_error_response(
    status_code: int,
    code: str,
    message: str,
    *,
    details: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Build the JSON error body shared by every handler.

    Shape: ``{"error": {"code", "message", "request_id", "details"?}}``.
    """
    error_content: dict[str, Any] = {
        "code": code,
        "message": message,
        "request_id": get_request_id(),
    }
    if details:
        error_content["details"] = jsonable_encoder(details)

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=dict(headers) if headers else None,
    )


def status_for_app_error(exc: AppError) -> int:
    """Map an AppError subclass to its HTTP status code."""
    if isinstance(exc, AuthenticationAppError):
        return 401
    if isinstance(exc, NotFoundAppError):
        return 404
    if isinstance(exc, RateLimitAppError):
        return 429
    if isinstance(exc, DatabaseConnectionError):
        return 500
    if isinstance(exc, ValidationAppError):
        return 400
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle application errors with consistent JSON format.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_for_app_error(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    return build_error_response(status_code, exc.code, exc.message, details=exc.details)


async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    """Respond to requests no route matched (unknown path or method).

    Handlers raising ``HTTPException(404, detail=...)`` keep their message.
    """
    message = f"Cannot {request.method} {request.url.path}"
    if isinstance(exc, StarletteHTTPException) and exc.status_code == 404 and exc.detail != "Not Found":
        message = str(exc.detail)

    logger.info(
        "route_not_found",
        extra={"request_path": request.url.path, "request_method": request.method},
    )

    error = NotFoundAppError(
        code="not_found",
        message=message,
        details={"path": request.url.path, "method": request.method},
    )
    return await app_error_handler(request, error)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap HTTPException raised by handlers or dependencies in the error shape."""
    code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")

    logger.info(
        "http_exception_handled",
        extra={"status_code": exc.status_code, "error_code": code},
    )

    return build_error_response(
        exc.status_code,
        code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request schema violations as 422 with the offending fields."""
    logger.info(
        "request_validation_failed",
        extra={"error_count": len(exc.errors()), "request_path": request.url.path},
    )

    return build_error_response(
        422,
        "validation_error",
        "Request payload failed validation",
        details={"context": {"errors": exc.errors()}},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Catches any exception not handled by specific handlers, including faults
    raised inside pipeline stages. Logs the failure while returning a generic
    message; no stack traces or exception text reach the client.

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
        exc_info=exc,
    )

    return build_error_response(
        500,
        "internal_server_error",
        "An unexpected error occurred. Please try again later.",
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Status-code handlers for 404/405 take precedence over the HTTPException
    class handler, so unmatched routes always get the not-found shape.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(404)(not_found_handler)
    app.exception_handler(405)(not_found_handler)
    # Last resort for apps built without the pipeline's error stages
    app.exception_handler(Exception)(general_exception_handler)
