"""Generic database utility functions for Supabase interactions."""

import logging
from typing import Any

from supabase import Client

from src.signin.services.database.connection import get_supabase_admin_client

logger = logging.getLogger(__name__)


class SupabaseQueryBuilder:
    """Helper class for building and executing Supabase queries."""

    def __init__(self, client: Client | None = None) -> None:
        """
        Initialize query builder.

        Args:
            client: Supabase client instance (uses the admin client if None)
        """
        self.client = client or get_supabase_admin_client()

    def get_by_id(self, table: str, record_id: str, columns: str = "*") -> dict[str, Any] | None:
        """
        Fetch a single record by ID.

        Returns:
            Record dictionary or None if not found
        """
        response = self.client.table(table).select(columns).eq("id", str(record_id)).execute()
        return response.data[0] if response.data else None

    def get_by_fields(
        self, table: str, filters: dict[str, Any], columns: str = "*"
    ) -> dict[str, Any] | None:
        """
        Fetch the first record matching all field values.

        Example:
            >>> builder = SupabaseQueryBuilder()
            >>> link = builder.get_by_fields(
            ...     "provider_links", {"provider": "google", "subject": "1101694844"}
            ... )
        """
        query = self.client.table(table).select(columns)
        for field, value in filters.items():
            query = query.eq(field, value)
        response = query.limit(1).execute()
        return response.data[0] if response.data else None

    def list_records(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        columns: str = "*",
        order_by: str | None = None,
        order_desc: bool = True,
    ) -> list[dict[str, Any]]:
        """
        List records with optional filtering and ordering.

        Returns:
            List of record dictionaries
        """
        query = self.client.table(table).select(columns)

        if filters:
            for field, value in filters.items():
                query = query.eq(field, value)

        if order_by:
            query = query.order(order_by, desc=order_desc)

        return query.execute().data

    def insert_record(self, table: str, data: dict[str, Any]) -> dict[str, Any] | None:
        """
        Insert a single record.

        Returns:
            Inserted record dictionary or None if failed

        Raises:
            postgrest.exceptions.APIError: If the insert violates a constraint
        """
        response = self.client.table(table).insert(data).execute()
        return response.data[0] if response.data else None

    def update_record(
        self, table: str, record_id: str, data: dict[str, Any]
    ) -> dict[str, Any] | None:
        """
        Update a record by ID.

        Returns:
            Updated record dictionary or None if not found
        """
        response = self.client.table(table).update(data).eq("id", str(record_id)).execute()
        return response.data[0] if response.data else None

    def update_record_if_null(
        self, table: str, record_id: str, null_field: str, data: dict[str, Any]
    ) -> dict[str, Any] | None:
        """
        Update a record by ID only while ``null_field`` is still null.

        Returns:
            Updated record dictionary, or None if the record is missing or the
            field was already set

        Example:
            >>> builder.update_record_if_null(
            ...     "provider_links", link_id, "account_id", {"account_id": account_id}
            ... )
        """
        response = (
            self.client.table(table)
            .update(data)
            .eq("id", str(record_id))
            .is_(null_field, "null")
            .execute()
        )
        return response.data[0] if response.data else None

    def delete_record(self, table: str, record_id: str) -> bool:
        """
        Delete a record by ID.

        Returns:
            True if deleted, False if not found
        """
        response = self.client.table(table).delete().eq("id", str(record_id)).execute()
        return len(response.data) > 0


def get_query_builder(client: Client | None = None) -> SupabaseQueryBuilder:
    """Get a query builder bound to ``client`` or the admin client."""
    return SupabaseQueryBuilder(client)
