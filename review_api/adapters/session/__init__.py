"""Session storage adapters.

The MongoDB store is used in production; the in-memory store serves local
development and tests behind the same interface.
"""

from review_api.adapters.session.base import AbstractSessionStore
from review_api.adapters.session.in_memory import InMemorySessionStore
from review_api.adapters.session.mongo import MongoSessionStore

__all__ = ["AbstractSessionStore", "InMemorySessionStore", "MongoSessionStore"]
