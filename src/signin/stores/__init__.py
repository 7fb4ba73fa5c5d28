"""Account, provider link, and session persistence."""

from src.signin.stores.base import (
    DuplicateRecordError,
    LinkStore,
    SessionStore,
    StoreError,
    UserStore,
)
from src.signin.stores.memory import InMemoryLinkStore, InMemorySessionStore, InMemoryUserStore

__all__ = [
    "DuplicateRecordError",
    "StoreError",
    "UserStore",
    "LinkStore",
    "SessionStore",
    "InMemoryUserStore",
    "InMemoryLinkStore",
    "InMemorySessionStore",
]
