"""Application factory for the FastAPI app.

Centralizes app construction (settings, pipeline, handlers, routers, shared
stores) so tests can build isolated instances with their own settings and
session store.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from starlette.staticfiles import StaticFiles

from review_api.adapters.session.base import AbstractSessionStore
from review_api.adapters.session.mongo import MongoSessionStore
from review_api.api.routes import (
    auth_router,
    employee_router,
    health_router,
    pages_router,
    review_router,
)
from review_api.core.config import Settings, settings as default_settings
from review_api.core.database import MongoConnection
from review_api.core.exception_handlers import setup_exception_handlers
from review_api.core.logging import configure_logging
from review_api.core.pipeline import build_pipeline
from review_api.core.rate_limit import build_rate_limiter
from review_api.core.templates import build_templates

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect to MongoDB before serving; close the client on shutdown.

    The ASGI server does not accept requests until this startup half
    returns, and an unreachable database raises out of it, aborting startup.
    When a session store was injected (tests, local runs) no connection is
    opened.
    """
    cfg: Settings = app.state.settings
    connection: MongoConnection | None = None

    if app.state.session_store is None:
        connection = MongoConnection(cfg.db)
        database = await connection.connect()
        store = MongoSessionStore(
            database[cfg.db.sessions_collection],
            ttl_seconds=cfg.app.session_store_ttl_seconds,
        )
        await store.ensure_indexes()
        app.state.mongo = connection
        app.state.session_store = store

    logger.info(
        "app.started",
        extra={
            "app_env": cfg.app_env,
            "session_store": type(app.state.session_store).__name__,
        },
    )
    try:
        yield
    finally:
        if connection is not None:
            await connection.close()
        logger.info("app.stopped")


def create_app(
    settings: Settings | None = None,
    *,
    session_store: AbstractSessionStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        settings: Settings to use; defaults to the process-wide instance.
        session_store: Session backend; when omitted a MongoDB store is
            created during startup.

    Returns:
        Configured FastAPI app with pipeline, handlers and routers.
    """
    cfg = settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)
    if cfg.app.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    app = FastAPI(
        title="Employee Review API",
        description=(
            "Session-based backend for writing and tracking employee reviews. "
            "Every request passes a fixed middleware pipeline: sessions, static "
            "assets, body parsing, security headers, compression, proxy-aware "
            "rate limiting and request logging."
        ),
        version="0.1.0",
        middleware=build_pipeline(cfg.app),
        lifespan=lifespan,
    )

    # Shared, explicitly injected state reached by stages via request.app.state
    app.state.settings = cfg
    app.state.session_store = session_store
    app.state.rate_limiter = build_rate_limiter(cfg.app)
    app.state.static_files = StaticFiles(directory=cfg.app.static_dir, check_dir=False)
    app.state.templates = build_templates(cfg.app.templates_dir)

    # Exception handlers (not-found and terminal error handling)
    setup_exception_handlers(app)

    # Routers
    app.include_router(pages_router)
    app.include_router(health_router)
    app.include_router(auth_router, prefix=f"{API_PREFIX}/auth")
    app.include_router(employee_router, prefix=f"{API_PREFIX}/employee")
    app.include_router(review_router, prefix=f"{API_PREFIX}/review")

    return app
