"""Generic database utility functions for Supabase interactions."""

import logging
from typing import Any

from supabase import Client

from src.signin.services.database.connection import get_supabase_admin_client, get_supabase_client

logger = logging.getLogger(__name__)


class SupabaseQueryBuilder:
    """Helper class for building and executing Supabase queries."""

    def __init__(self, client: Client | None = None) -> None:
        """
        Initialize query builder.

        Args:
            client: Supabase client instance (uses default if None)
        """
        self.client = client or get_supabase_client()

    def get_by_field(
        self, table: str, field: str, value: Any, columns: str = "*"
    ) -> dict[str, Any] | None:
        """
        Fetch a single record by field value.

        Args:
            table: Table name
            field: Field name to filter by
            value: Field value
            columns: Columns to select (default: "*")

        Returns:
            First matching record or None

        Example:
            >>> builder = SupabaseQueryBuilder()
            >>> user = builder.get_by_field("users", "email", "user@example.com")
        """
        response = self.client.table(table).select(columns).eq(field, value).limit(1).execute()
        return response.data[0] if response.data else None

    def get_first_joined(
        self,
        table: str,
        foreign_table: str,
        foreign_filters: dict[str, Any],
        order_by: str | None = None,
        order_desc: bool = True,
    ) -> dict[str, Any] | None:
        """
        Fetch the first record of ``table`` whose referenced row matches filters.

        Uses a PostgREST inner embed, so rows without a matching foreign row
        are excluded. The embedded row is stripped from the result.

        Args:
            table: Table name (holds the foreign key)
            foreign_table: Referenced table name
            foreign_filters: field:value pairs applied to the referenced table
            order_by: Column of ``table`` to order by
            order_desc: Order descending (default: True)

        Returns:
            First matching record of ``table`` or None

        Example:
            >>> builder = SupabaseQueryBuilder()
            >>> token = builder.get_first_joined(
            ...     "api_tokens",
            ...     "users",
            ...     {"email": "user@example.com", "active": True},
            ...     order_by="issued_at",
            ... )
        """
        query = self.client.table(table).select(f"*, {foreign_table}!inner(id)")

        for field, value in foreign_filters.items():
            query = query.eq(f"{foreign_table}.{field}", value)

        if order_by:
            query = query.order(order_by, desc=order_desc)

        response = query.limit(1).execute()
        if not response.data:
            return None

        record = dict(response.data[0])
        record.pop(foreign_table, None)
        return record

    def insert_record(self, table: str, data: dict[str, Any]) -> dict[str, Any] | None:
        """
        Insert a single record.

        Args:
            table: Table name
            data: Record data dictionary

        Returns:
            Inserted record dictionary or None if failed

        Raises:
            postgrest.exceptions.APIError: If insert operation fails

        Example:
            >>> builder = SupabaseQueryBuilder()
            >>> token = builder.insert_record(
            ...     "api_tokens",
            ...     {"user_id": user_id, "value": "opaque-token"}
            ... )
        """
        response = self.client.table(table).insert(data).execute()
        return response.data[0] if response.data else None


def get_query_builder(client: Client | None = None, use_admin: bool = True) -> SupabaseQueryBuilder:
    """
    Get instance of SupabaseQueryBuilder.

    Args:
        client: Optional Supabase client (uses default if None)
        use_admin: If True (default), uses admin client that bypasses RLS.
                   Set to False for operations that should respect RLS policies.

    Returns:
        SupabaseQueryBuilder instance
    """
    if client is None:
        client = get_supabase_admin_client() if use_admin else get_supabase_client()
    return SupabaseQueryBuilder(client)
