"""The request pipeline: an explicit, ordered list of middleware stages.

The list is handed to FastAPI as ``middleware=...``, which runs it outermost
first. Order is part of the contract:

 0. request id        (correlation for every log line below)
 1. session           (load now, persist after the response)
 2. static assets     (serve and stop on a hit)
 3. body parsing      (400 on malformed JSON / form bodies)
 4. cookie parsing
 5. security headers
 6. gzip compression
 7. client address    (trusted-hop X-Forwarded-For resolution)
 8. rate limiting     (429 over the cap)
 9. templates
10. last-visit cookie
11. request logging
12. error handling    (route faults become a structured 500)
    → routing, not-found handling, exception handlers
"""

from __future__ import annotations

from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware

from review_api.core.config import AppSettings
from review_api.core.middleware import (
    body_parsing_middleware,
    cookie_parsing_middleware,
    error_handling_middleware,
    last_visit_middleware,
    request_id_middleware,
    request_logging_middleware,
    security_headers_middleware,
    static_files_middleware,
    templates_middleware,
)
from review_api.core.proxy import client_address_middleware
from review_api.core.rate_limit import rate_limit_middleware
from review_api.core.session import session_middleware


def _stage(dispatch) -> Middleware:
    return Middleware(BaseHTTPMiddleware, dispatch=dispatch)


def build_pipeline(app_settings: AppSettings) -> list[Middleware]:
    """Return the pipeline stages, outermost first."""

    return [
        _stage(request_id_middleware),
        _stage(session_middleware),
        _stage(static_files_middleware),
        _stage(body_parsing_middleware),
        _stage(cookie_parsing_middleware),
        _stage(security_headers_middleware),
        Middleware(GZipMiddleware, minimum_size=app_settings.compression_min_size),
        _stage(client_address_middleware),
        _stage(rate_limit_middleware),
        _stage(templates_middleware),
        _stage(last_visit_middleware),
        _stage(request_logging_middleware),
        _stage(error_handling_middleware),
    ]
