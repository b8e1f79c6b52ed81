"""In-memory session store for development and tests.

Not suitable for production: sessions are lost on restart and not shared
across processes.
"""

from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from review_api.adapters.session.base import AbstractSessionStore

logger = logging.getLogger(__name__)


@dataclass
class SessionRecord:
    """Stored session payload with its absolute expiry."""

    data: dict[str, Any]
    expires_at: float


class InMemorySessionStore(AbstractSessionStore):
    """Dict-backed store that drops expired records lazily on access."""

    def __init__(self, *, ttl_seconds: int, clock: Callable[[], float] = time.time) -> None:
        super().__init__(ttl_seconds=ttl_seconds)
        self._clock = clock
        self._records: dict[str, SessionRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def load(self, session_id: str) -> dict[str, Any] | None:
        record = self._records.get(session_id)
        if record is None:
            return None
        if record.expires_at <= self._clock():
            self._records.pop(session_id, None)
            logger.debug("session_store.expired", extra={"store": "memory"})
            return None
        # Callers mutate what they get back; keep the stored copy isolated
        return copy.deepcopy(record.data)

    async def save(self, session_id: str, data: dict[str, Any]) -> None:
        self._records[session_id] = SessionRecord(
            data=copy.deepcopy(data),
            expires_at=self._clock() + self.ttl_seconds,
        )

    async def destroy(self, session_id: str) -> None:
        self._records.pop(session_id, None)
