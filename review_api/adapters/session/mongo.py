"""MongoDB session store.

Documents look like ``{"_id": <session id>, "session": {...}, "expires": <date>}``.
A TTL index on ``expires`` lets MongoDB delete expired sessions itself; since
the TTL monitor only runs periodically, reads also ignore documents whose
``expires`` is already in the past.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from pymongo.asynchronous.collection import AsyncCollection

from review_api.adapters.session.base import AbstractSessionStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MongoSessionStore(AbstractSessionStore):
    """Session store backed by a MongoDB collection.

    Args:
        collection: Async collection holding session documents.
        ttl_seconds: Lifetime of a record after its last save.
        clock: Returns the current time as an aware UTC datetime.
    """

    def __init__(
        self,
        collection: AsyncCollection,
        *,
        ttl_seconds: int,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds)
        self._collection = collection
        self._clock = clock

    async def ensure_indexes(self) -> None:
        """Create the TTL index that makes MongoDB expire sessions."""
        await self._collection.create_index("expires", expireAfterSeconds=0)
        logger.info(
            "session_store.indexes_ready",
            extra={"collection": self._collection.name},
        )

    async def load(self, session_id: str) -> dict[str, Any] | None:
        document = await self._collection.find_one(
            {
                "_id": session_id,
                "$or": [
                    {"expires": {"$exists": False}},
                    {"expires": {"$gt": self._clock()}},
                ],
            }
        )
        if document is None:
            return None
        return document.get("session") or {}

    async def save(self, session_id: str, data: dict[str, Any]) -> None:
        expires = self._clock() + timedelta(seconds=self.ttl_seconds)
        await self._collection.replace_one(
            {"_id": session_id},
            {"_id": session_id, "session": data, "expires": expires},
            upsert=True,
        )

    async def destroy(self, session_id: str) -> None:
        await self._collection.delete_one({"_id": session_id})
