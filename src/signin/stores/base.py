"""Capability interfaces for account, provider link, and session persistence."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from src.signin.identity.models import LocalAccount, ProviderLink, SessionHandle


class StoreError(Exception):
    """Base exception for persistence failures."""

    pass


class DuplicateRecordError(StoreError):
    """Raised when a write violates a uniqueness constraint."""

    pass


class UserStore(ABC):
    """Lookup and persistence of local accounts."""

    @abstractmethod
    async def find_by_username(self, username: str) -> LocalAccount | None:
        """Return the account with this username, if any."""

    @abstractmethod
    async def find_by_email(self, email: str) -> LocalAccount | None:
        """Return the account holding this exact email, if any."""

    @abstractmethod
    async def find_by_id(self, account_id: str) -> LocalAccount | None:
        """Return the account with this id, if any."""

    @abstractmethod
    async def save(self, account: LocalAccount) -> LocalAccount:
        """
        Insert or update an account.

        Accounts without an id are inserted and returned with their new id.

        Raises:
            DuplicateRecordError: If the username or email is already taken
        """

    @abstractmethod
    async def delete(self, account_id: str) -> None:
        """Delete an account. Unknown ids are ignored."""


class LinkStore(ABC):
    """Lookup and persistence of provider links."""

    @abstractmethod
    async def find_by_provider_and_subject(
        self, provider: str, subject: str
    ) -> ProviderLink | None:
        """Return the link for one provider identity, if any."""

    @abstractmethod
    async def find_by_account_id(self, account_id: str) -> list[ProviderLink]:
        """Return all links bound to an account."""

    @abstractmethod
    async def save(self, link: ProviderLink) -> ProviderLink:
        """
        Insert or update a link.

        Raises:
            DuplicateRecordError: If inserting a second link for (provider, subject)
        """

    @abstractmethod
    async def bind(self, link: ProviderLink, account_id: str) -> ProviderLink | None:
        """
        Bind an unbound link to an account and stamp its last login.

        Compare-and-set on ``account_id``: the write only applies while the
        stored link is unbound, or already bound to the same account.

        Returns:
            The bound link, or None if the link is bound to another account

        Raises:
            StoreError: If the link does not exist or cannot be written
        """

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """
        Atomic region spanning one linking operation.

        Backends with transactions override this; the default relies on the
        (provider, subject) unique constraint and the compare-and-set in
        ``bind``.
        """
        yield


class SessionStore(ABC):
    """Issuance and invalidation of sessions."""

    @abstractmethod
    async def create_session(self, attributes: dict[str, Any]) -> SessionHandle:
        """Create a session holding a copy of ``attributes``."""

    @abstractmethod
    async def get(self, session_id: str) -> SessionHandle | None:
        """Return a live session by id, if any."""

    @abstractmethod
    async def invalidate(self, handle: SessionHandle) -> None:
        """Invalidate a session. Unknown sessions are ignored."""
