"""HTTP middleware stages of the request pipeline.

Every stage is a plain ``async def stage(request, call_next)`` function. A
stage either continues by awaiting ``call_next``, short-circuits by returning
its own response, or raises. Faults raised by route handlers are answered by
the innermost error stage; a fault raised by a stage itself is answered by
the request-id stage at the outside. The order the stages run in is defined in
``review_api.core.pipeline``.

Stages reach shared objects (settings, stores, templates) through
``request.app.state`` rather than module globals.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import Request, Response
from starlette.datastructures import FormData
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.staticfiles import StaticFiles

from review_api.core.errors import ValidationAppError
from review_api.core.exception_handlers import app_error_handler, general_exception_handler
from review_api.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

# Protective response headers, matching helmet's defaults
SECURITY_HEADERS: dict[str, str] = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
_BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    Ensures every HTTP request/response pair carries a unique correlation ID
    for log aggregation. Stores the request_id in contextvars so it's
    accessible throughout the entire request lifecycle, including in error
    responses built by later stages.

    If the client provides an X-Request-ID header (configurable via
    LOG_REQUEST_ID_HEADER), that value is used. Otherwise, a new UUID is
    generated.

    Side Effects:
        - Sets request_id in contextvars (accessible via get_request_id())
        - Clears request_id from contextvars after request completes
        - Adds X-Request-ID header to response
        - Adds X-Request-Duration-ms header to response
    """

    header_name = request.app.state.settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        # A stage itself faulted; the stages it skipped add nothing to this 500
        response = await general_exception_handler(request, exc)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def static_files_middleware(request: Request, call_next) -> Response:
    """Serve files from the public directory and end the chain on a hit."""

    if request.method in ("GET", "HEAD"):
        static_files: StaticFiles = request.app.state.static_files
        path = static_files.get_path(request.scope)
        try:
            return await static_files.get_response(path, request.scope)
        except StarletteHTTPException as exc:
            # Not an asset (or unreadable): let the rest of the pipeline decide
            if exc.status_code != 404:
                logger.debug("static.skipped", extra={"status_code": exc.status_code})

    return await call_next(request)


def _form_to_dict(form: FormData) -> dict[str, Any]:
    body: dict[str, Any] = {}
    for key in form.keys():
        values = form.getlist(key)
        body[key] = values[0] if len(values) == 1 else values
    return body


async def body_parsing_middleware(request: Request, call_next) -> Response:
    """Parse JSON and URL-encoded bodies into ``request.state.body``.

    Malformed bodies short-circuit with 400. The raw body stays readable by
    route handlers.
    """

    request.state.body = {}
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()

    if request.method in _BODY_METHODS and content_type in (JSON_CONTENT_TYPE, FORM_CONTENT_TYPE):
        raw = await request.body()
        if raw:
            try:
                if content_type == JSON_CONTENT_TYPE:
                    request.state.body = await request.json()
                else:
                    request.state.body = _form_to_dict(await request.form())
            except ValueError as exc:
                logger.info(
                    "body_parsing.rejected",
                    extra={"content_type": content_type, "error_type": type(exc).__name__},
                )
                error = ValidationAppError(
                    code="invalid_request_body",
                    message="Request body could not be parsed",
                    details={"content_type": content_type},
                )
                return await app_error_handler(request, error)

    return await call_next(request)


async def cookie_parsing_middleware(request: Request, call_next) -> Response:
    """Expose the decoded Cookie header as ``request.state.cookies``."""

    request.state.cookies = dict(request.cookies)
    return await call_next(request)


async def security_headers_middleware(request: Request, call_next) -> Response:
    """Set the fixed protective header set on every downstream response."""

    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    if "x-powered-by" in response.headers:
        del response.headers["x-powered-by"]
    return response


async def templates_middleware(request: Request, call_next) -> Response:
    """Make the Jinja2 environment available to handlers."""

    request.state.templates = request.app.state.templates
    return await call_next(request)


def _iso_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def last_visit_middleware(request: Request, call_next) -> Response:
    """Expose the previous visit time and stamp the current one.

    ``request.state.last_visit`` holds the cookie value sent by the client
    (None on a first visit). After the response the cookie is set to the
    current server time.
    """

    app_settings = request.app.state.settings.app
    request.state.last_visit = request.cookies.get(app_settings.last_visit_cookie_name)

    response = await call_next(request)

    visited_at = _iso_timestamp(datetime.now(timezone.utc))
    response.set_cookie(
        app_settings.last_visit_cookie_name,
        visited_at,
        max_age=app_settings.last_visit_max_age_seconds,
        path="/",
        httponly=True,
        samesite="lax",
    )
    return response


async def request_logging_middleware(request: Request, call_next) -> Response:
    """Log method, path, status and duration of each routed request."""

    start = time.perf_counter()
    response = await call_next(request)

    logger.info(
        "request.completed",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "client_ip": getattr(request.state, "client_ip", None),
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
        },
    )
    return response


async def error_handling_middleware(request: Request, call_next) -> Response:
    """Turn faults raised by route handlers into the structured 500.

    Runs innermost, so the 500 travels back out through every stage like any
    other response (security headers, last-visit cookie, request log).
    """

    try:
        return await call_next(request)
    except Exception as exc:
        return await general_exception_handler(request, exc)
