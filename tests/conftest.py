"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Required settings are placed in the environment before anything imports
``review_api.core.config``, whose module-level ``settings`` would otherwise
fail validation.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_SESSION_SECRET", "test-session-secret")
os.environ.setdefault("DB_URL", "mongodb://localhost:27017/review_api_test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any, Callable  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from review_api.adapters.session.in_memory import InMemorySessionStore  # noqa: E402
from review_api.core.app_factory import create_app  # noqa: E402
from review_api.core.config import AppSettings, DatabaseSettings, LogSettings, Settings  # noqa: E402


class FakeClock:
    """Mutable time source for stores and limiters."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSessionStore(InMemorySessionStore):
    """In-memory store that remembers every write and delete."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.saves: list[tuple[str, dict[str, Any]]] = []
        self.destroyed: list[str] = []

    async def save(self, session_id: str, data: dict[str, Any]) -> None:
        self.saves.append((session_id, data))
        await super().save(session_id, data)

    async def destroy(self, session_id: str) -> None:
        self.destroyed.append(session_id)
        await super().destroy(session_id)


def build_settings(**app_overrides: Any) -> Settings:
    app_values: dict[str, Any] = {"session_secret": "test-session-secret"}
    app_values.update(app_overrides)
    return Settings(
        app=AppSettings(**app_values),
        db=DatabaseSettings(url="mongodb://localhost:27017/review_api_test"),
        log=LogSettings(level="WARNING"),
    )


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    return build_settings


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_store(clock: FakeClock) -> RecordingSessionStore:
    return RecordingSessionStore(ttl_seconds=15 * 60, clock=clock)


@pytest.fixture
def make_app(session_store: RecordingSessionStore) -> Callable[..., FastAPI]:
    """Factory building an app with the recording store and optional overrides."""

    def _make(**app_overrides: Any) -> FastAPI:
        return create_app(build_settings(**app_overrides), session_store=session_store)

    return _make


@pytest.fixture
def app(make_app: Callable[..., FastAPI]) -> FastAPI:
    return make_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def login(client: TestClient) -> Callable[..., Any]:
    def _login(email: str = "ana@example.com", name: str = "Ana", role: str = "employee"):
        response = client.post(
            "/api/v1/auth/login",
            json={"email": email, "name": name, "role": role},
        )
        assert response.status_code == 200
        return response

    return _login
