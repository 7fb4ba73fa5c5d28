"""Supabase-backed store implementations.

Tables (uuid primary keys defaulting to gen_random_uuid()):
    accounts:       username unique, email unique (nullable), roles text[]
    provider_links: unique (provider, subject), account_id references accounts
    sessions:       attributes jsonb
"""

import logging
import secrets
from typing import Any

from postgrest.exceptions import APIError

from src.signin.identity.models import LocalAccount, ProviderLink, SessionHandle, utcnow
from src.signin.services.database.utils import SupabaseQueryBuilder, get_query_builder
from src.signin.stores.base import (
    DuplicateRecordError,
    LinkStore,
    SessionStore,
    StoreError,
    UserStore,
)

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def _write(operation, table: str, *args: Any) -> dict[str, Any]:
    try:
        row = operation(table, *args)
    except APIError as e:
        if e.code == UNIQUE_VIOLATION:
            raise DuplicateRecordError(f"Unique constraint violated on {table}") from e
        logger.error(f"Write to {table} failed: {e}", extra={"error_type": "store_write_failed"})
        raise StoreError(f"Write to {table} failed") from e
    if row is None:
        raise StoreError(f"Write to {table} returned no row")
    return row


class SupabaseUserStore(UserStore):
    """Accounts in the ``accounts`` table."""

    table = "accounts"

    def __init__(self, db: SupabaseQueryBuilder | None = None):
        self.db = db or get_query_builder()

    async def find_by_username(self, username: str) -> LocalAccount | None:
        row = self.db.get_by_fields(self.table, {"username": username})
        return LocalAccount.model_validate(row) if row else None

    async def find_by_email(self, email: str) -> LocalAccount | None:
        row = self.db.get_by_fields(self.table, {"email": email})
        return LocalAccount.model_validate(row) if row else None

    async def find_by_id(self, account_id: str) -> LocalAccount | None:
        row = self.db.get_by_id(self.table, account_id)
        return LocalAccount.model_validate(row) if row else None

    async def save(self, account: LocalAccount) -> LocalAccount:
        data = account.model_dump(mode="json", exclude={"id"})
        if account.id is None:
            row = _write(self.db.insert_record, self.table, data)
        else:
            row = _write(self.db.update_record, self.table, account.id, data)
        return LocalAccount.model_validate(row)

    async def delete(self, account_id: str) -> None:
        try:
            self.db.delete_record(self.table, account_id)
        except APIError as e:
            raise StoreError(f"Delete from {self.table} failed") from e


class SupabaseLinkStore(LinkStore):
    """
    Provider links in the ``provider_links`` table.

    PostgREST has no client-side transactions, so ``atomic()`` keeps the
    default no-op. Duplicate inserts surface as DuplicateRecordError and
    ``bind`` is a conditional update on ``account_id is null``.
    """

    table = "provider_links"

    def __init__(self, db: SupabaseQueryBuilder | None = None):
        self.db = db or get_query_builder()

    async def find_by_provider_and_subject(
        self, provider: str, subject: str
    ) -> ProviderLink | None:
        row = self.db.get_by_fields(self.table, {"provider": provider, "subject": subject})
        return ProviderLink.model_validate(row) if row else None

    async def find_by_account_id(self, account_id: str) -> list[ProviderLink]:
        rows = self.db.list_records(
            self.table, filters={"account_id": account_id}, order_by="created_at"
        )
        return [ProviderLink.model_validate(row) for row in rows]

    async def save(self, link: ProviderLink) -> ProviderLink:
        data = link.model_dump(mode="json", exclude={"id"})
        if link.id is None:
            row = _write(self.db.insert_record, self.table, data)
        else:
            row = _write(self.db.update_record, self.table, link.id, data)
        return ProviderLink.model_validate(row)

    async def bind(self, link: ProviderLink, account_id: str) -> ProviderLink | None:
        data = {"account_id": account_id, "last_login_at": utcnow().isoformat()}
        try:
            row = self.db.update_record_if_null(self.table, link.id, "account_id", data)
        except APIError as e:
            logger.error(f"Binding link failed: {e}", extra={"error_type": "store_write_failed"})
            raise StoreError(f"Binding link {link.id} failed") from e
        if row is not None:
            return ProviderLink.model_validate(row)

        # Lost the compare-and-set, or the link was already ours.
        current = self.db.get_by_id(self.table, link.id)
        if current is None:
            raise StoreError(f"Link {link.id} does not exist")
        if current.get("account_id") == account_id:
            return ProviderLink.model_validate(current)
        return None


class SupabaseSessionStore(SessionStore):
    """Sessions in the ``sessions`` table, keyed by random url-safe ids."""

    table = "sessions"

    def __init__(self, db: SupabaseQueryBuilder | None = None):
        self.db = db or get_query_builder()

    async def create_session(self, attributes: dict[str, Any]) -> SessionHandle:
        handle = SessionHandle(id=secrets.token_urlsafe(32), attributes=attributes)
        row = _write(self.db.insert_record, self.table, handle.model_dump(mode="json"))
        return SessionHandle.model_validate(row)

    async def get(self, session_id: str) -> SessionHandle | None:
        row = self.db.get_by_id(self.table, session_id)
        return SessionHandle.model_validate(row) if row else None

    async def invalidate(self, handle: SessionHandle) -> None:
        if not self.db.delete_record(self.table, handle.id):
            logger.debug("Session already gone", extra={"session_id_prefix": handle.id[:6]})
