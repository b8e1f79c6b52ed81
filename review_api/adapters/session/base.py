"""Session store interface.

The session middleware only talks to this abstraction. Stores own expiry:
a record saved with ``save`` must stop being returned by ``load`` once its
time-to-live has elapsed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class AbstractSessionStore(ABC):
    """Interface for session persistence backends.

    Concurrent saves for the same session id are last-write-wins; stores give
    no stronger guarantee.
    """

    def __init__(self, *, ttl_seconds: int) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        self._ttl_seconds = ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    @abstractmethod
    async def load(self, session_id: str) -> dict[str, Any] | None:
        """Return the data stored for ``session_id``, or None if missing/expired."""
        raise NotImplementedError

    @abstractmethod
    async def save(self, session_id: str, data: dict[str, Any]) -> None:
        """Insert or replace the record and restart its time-to-live."""
        raise NotImplementedError

    @abstractmethod
    async def destroy(self, session_id: str) -> None:
        """Delete the record; deleting an unknown id is not an error."""
        raise NotImplementedError
