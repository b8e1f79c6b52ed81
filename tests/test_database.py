"""Tests for the MongoDB connection wrapper (client mocked)."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import ConfigurationError, ServerSelectionTimeoutError

from review_api.core.config import DatabaseSettings
from review_api.core.database import DEFAULT_DATABASE_NAME, MongoConnection
from review_api.core.errors import DatabaseConnectionError


def _client(ping: AsyncMock) -> MagicMock:
    client = MagicMock()
    client.admin.command = ping
    client.close = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_connect_pings_and_exposes_database():
    client = _client(AsyncMock(return_value={"ok": 1}))
    db_settings = DatabaseSettings(url="mongodb://db:27017", name="reviews")

    with patch("review_api.core.database.AsyncMongoClient", return_value=client) as client_cls:
        connection = MongoConnection(db_settings)
        database = await connection.connect()

    client_cls.assert_called_once_with(
        "mongodb://db:27017",
        serverSelectionTimeoutMS=5000,
        tz_aware=True,
    )
    client.admin.command.assert_awaited_once_with("ping")
    client.__getitem__.assert_called_once_with("reviews")
    assert database is client.__getitem__.return_value
    assert connection.is_connected
    assert connection.database is database


@pytest.mark.asyncio
async def test_database_name_falls_back_to_url_default():
    client = _client(AsyncMock(return_value={"ok": 1}))

    with patch("review_api.core.database.AsyncMongoClient", return_value=client):
        connection = MongoConnection(DatabaseSettings(url="mongodb://db:27017/from_url"))
        await connection.connect()

    client.get_default_database.assert_called_once_with(default=DEFAULT_DATABASE_NAME)


@pytest.mark.asyncio
async def test_unreachable_server_raises_fatal_error_and_closes_client():
    client = _client(AsyncMock(side_effect=ServerSelectionTimeoutError("No servers found")))

    with patch("review_api.core.database.AsyncMongoClient", return_value=client):
        connection = MongoConnection(DatabaseSettings(url="mongodb://db:27017"))
        with pytest.raises(DatabaseConnectionError) as excinfo:
            await connection.connect()

    assert excinfo.value.code == "database_unavailable"
    client.close.assert_awaited_once()
    assert not connection.is_connected


@pytest.mark.asyncio
async def test_invalid_url_raises_fatal_error():
    with patch(
        "review_api.core.database.AsyncMongoClient",
        side_effect=ConfigurationError("bad uri"),
    ):
        connection = MongoConnection(DatabaseSettings(url="not-a-url"))
        with pytest.raises(DatabaseConnectionError):
            await connection.connect()


@pytest.mark.asyncio
async def test_close_is_idempotent():
    client = _client(AsyncMock(return_value={"ok": 1}))

    with patch("review_api.core.database.AsyncMongoClient", return_value=client):
        connection = MongoConnection(DatabaseSettings(url="mongodb://db:27017", name="reviews"))
        await connection.connect()

    await connection.close()
    await connection.close()

    client.close.assert_awaited_once()
    with pytest.raises(RuntimeError):
        connection.database
