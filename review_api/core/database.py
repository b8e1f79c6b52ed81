"""MongoDB connection management.

A single client is opened during application startup and shared by every
request. Startup waits for a successful ping; if the server cannot be
reached the error is fatal and the application never starts serving.
"""

from __future__ import annotations

import logging

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from review_api.core.config import DatabaseSettings
from review_api.core.errors import DatabaseConnectionError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_NAME = "review_api"


class MongoConnection:
    """Owns the process-wide AsyncMongoClient.

    Usage:
        connection = MongoConnection(settings.db)
        await connection.connect()
        sessions = connection.database[settings.db.sessions_collection]
        ...
        await connection.close()
    """

    def __init__(self, db_settings: DatabaseSettings) -> None:
        self._settings = db_settings
        self._client: AsyncMongoClient | None = None
        self._database: AsyncDatabase | None = None

    @property
    def is_connected(self) -> bool:
        return self._database is not None

    @property
    def database(self) -> AsyncDatabase:
        if self._database is None:
            raise RuntimeError("MongoConnection.connect() must be awaited first")
        return self._database

    async def connect(self) -> AsyncDatabase:
        """Open the client and verify the server answers a ping.

        Raises:
            DatabaseConnectionError: If the URL is invalid or the server is
                unreachable within the configured timeout.
        """
        client: AsyncMongoClient | None = None
        try:
            client = AsyncMongoClient(
                self._settings.url,
                serverSelectionTimeoutMS=self._settings.connect_timeout_ms,
                tz_aware=True,
            )
            if self._settings.name:
                database = client[self._settings.name]
            else:
                database = client.get_default_database(default=DEFAULT_DATABASE_NAME)
            await client.admin.command("ping")
        except PyMongoError as exc:
            if client is not None:
                await client.close()
            logger.error(
                "database.connect_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            raise DatabaseConnectionError(
                code="database_unavailable",
                message="Could not connect to MongoDB",
                details={"hint": "Check DB_URL and that the server is reachable"},
            ) from exc

        self._client = client
        self._database = database
        logger.info("database.connected", extra={"database": database.name})
        return database

    async def close(self) -> None:
        if self._client is None:
            return
        await self._client.close()
        self._client = None
        self._database = None
        logger.info("database.closed")
