"""Tests for application assembly and the startup lifespan."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from review_api.adapters.session.in_memory import InMemorySessionStore
from review_api.adapters.session.mongo import MongoSessionStore
from review_api.core.app_factory import create_app
from review_api.core.errors import DatabaseConnectionError


def _mongo_connection(database: MagicMock | None = None, *, error: Exception | None = None) -> MagicMock:
    connection = MagicMock()
    connection.connect = AsyncMock(return_value=database, side_effect=error)
    connection.close = AsyncMock()
    return connection


def test_startup_connects_and_installs_mongo_store(make_settings):
    collection = MagicMock()
    collection.create_index = AsyncMock(return_value="expires_1")
    collection.find_one = AsyncMock(return_value=None)
    database = MagicMock()
    database.__getitem__.return_value = collection
    connection = _mongo_connection(database)

    app = create_app(make_settings())

    with patch("review_api.core.app_factory.MongoConnection", return_value=connection):
        with TestClient(app) as client:
            assert isinstance(app.state.session_store, MongoSessionStore)
            assert client.get("/health").status_code == 200

    database.__getitem__.assert_called_once_with("sessions")
    collection.create_index.assert_awaited_once_with("expires", expireAfterSeconds=0)
    connection.close.assert_awaited_once()


def test_unreachable_database_aborts_startup(make_settings):
    connection = _mongo_connection(
        error=DatabaseConnectionError(code="database_unavailable", message="Could not connect to MongoDB"),
    )
    app = create_app(make_settings())

    with patch("review_api.core.app_factory.MongoConnection", return_value=connection):
        with pytest.raises(DatabaseConnectionError):
            with TestClient(app):
                pass


def test_injected_store_skips_database(make_settings):
    store = InMemorySessionStore(ttl_seconds=60)
    app = create_app(make_settings(), session_store=store)

    with patch("review_api.core.app_factory.MongoConnection") as connection_cls:
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200

    connection_cls.assert_not_called()
    assert app.state.session_store is store


def test_routers_are_mounted(app):
    paths = {route.path for route in app.routes}

    assert {
        "/",
        "/health",
        "/api/v1/auth/login",
        "/api/v1/auth/logout",
        "/api/v1/auth/me",
        "/api/v1/employee/profile",
        "/api/v1/review",
    } <= paths
