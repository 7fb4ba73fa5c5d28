"""In-memory store implementations for local development and tests."""

import asyncio
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from copy import deepcopy
from typing import Any
from uuid import uuid4

from src.signin.identity.models import LocalAccount, ProviderLink, SessionHandle, utcnow
from src.signin.stores.base import (
    DuplicateRecordError,
    LinkStore,
    SessionStore,
    StoreError,
    UserStore,
)

logger = logging.getLogger(__name__)


class InMemoryUserStore(UserStore):
    """Accounts keyed by id, with unique usernames and emails."""

    def __init__(self) -> None:
        self._accounts: dict[str, LocalAccount] = {}
        self._lock = asyncio.Lock()

    async def find_by_username(self, username: str) -> LocalAccount | None:
        for account in self._accounts.values():
            if account.username == username:
                return account.model_copy(deep=True)
        return None

    async def find_by_email(self, email: str) -> LocalAccount | None:
        for account in self._accounts.values():
            if account.email == email:
                return account.model_copy(deep=True)
        return None

    async def find_by_id(self, account_id: str) -> LocalAccount | None:
        account = self._accounts.get(account_id)
        return account.model_copy(deep=True) if account else None

    async def save(self, account: LocalAccount) -> LocalAccount:
        async with self._lock:
            for other in self._accounts.values():
                if other.id == account.id:
                    continue
                if other.username == account.username:
                    raise DuplicateRecordError(f"Username '{account.username}' already taken")
                if account.email and other.email == account.email:
                    raise DuplicateRecordError("Email already taken")

            stored = account.model_copy(deep=True)
            if stored.id is None:
                stored.id = str(uuid4())
            self._accounts[stored.id] = stored
            return stored.model_copy(deep=True)

    async def delete(self, account_id: str) -> None:
        async with self._lock:
            self._accounts.pop(account_id, None)

    def __len__(self) -> int:
        return len(self._accounts)


class InMemoryLinkStore(LinkStore):
    """
    Provider links with a unique (provider, subject) constraint.

    ``atomic()`` holds a store-wide lock, so linking regions run one at a time
    the way serialisable transactions would.
    """

    def __init__(self) -> None:
        self._links: dict[str, ProviderLink] = {}
        self._lock = asyncio.Lock()
        self._region_lock = asyncio.Lock()

    async def find_by_provider_and_subject(
        self, provider: str, subject: str
    ) -> ProviderLink | None:
        for link in self._links.values():
            if link.provider == provider and link.subject == subject:
                return link.model_copy(deep=True)
        return None

    async def find_by_account_id(self, account_id: str) -> list[ProviderLink]:
        return [
            link.model_copy(deep=True)
            for link in self._links.values()
            if link.account_id == account_id
        ]

    async def save(self, link: ProviderLink) -> ProviderLink:
        async with self._lock:
            for other in self._links.values():
                if other.id == link.id:
                    continue
                if other.provider == link.provider and other.subject == link.subject:
                    raise DuplicateRecordError(
                        f"Link for ({link.provider}, subject) already exists"
                    )

            stored = link.model_copy(deep=True)
            if stored.id is None:
                stored.id = str(uuid4())
            self._links[stored.id] = stored
            return stored.model_copy(deep=True)

    async def bind(self, link: ProviderLink, account_id: str) -> ProviderLink | None:
        async with self._lock:
            stored = self._links.get(link.id)
            if stored is None:
                raise StoreError(f"Link {link.id} does not exist")
            if stored.account_id not in (None, account_id):
                return None

            stored.account_id = account_id
            stored.last_login_at = utcnow()
            return stored.model_copy(deep=True)

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        async with self._region_lock:
            yield

    def __len__(self) -> int:
        return len(self._links)


class InMemorySessionStore(SessionStore):
    """Sessions keyed by random url-safe ids."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionHandle] = {}

    async def create_session(self, attributes: dict[str, Any]) -> SessionHandle:
        handle = SessionHandle(id=secrets.token_urlsafe(32), attributes=deepcopy(attributes))
        self._sessions[handle.id] = handle
        logger.debug("Session created", extra={"session_count": len(self._sessions)})
        return handle.model_copy(deep=True)

    async def get(self, session_id: str) -> SessionHandle | None:
        handle = self._sessions.get(session_id)
        return handle.model_copy(deep=True) if handle else None

    async def invalidate(self, handle: SessionHandle) -> None:
        self._sessions.pop(handle.id, None)

    def __len__(self) -> int:
        return len(self._sessions)
