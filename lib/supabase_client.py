# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations on
# the wish_items table. It implements the singleton pattern to reuse a single
# client connection and provides specialized methods for:
# - Keyset-paginated reads in list order
# - Single item lookups and the current bottom key
# - Inserts, key updates and soft deletes
# - Calling the rebalance_wishlist_items() Postgres function
#
# Ordering keys are numeric(38,18). PostgREST returns numerics as JSON
# numbers, which would go through float, so every read casts them to text.
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   rows = SupabaseClient.fetch_items_after(wishlist_id, after=None, limit=21)
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from app.config import settings
from lib.pagination import SortPosition, ensure_utc
from lib.priority_math import format_priority

# Set up logging for this module
logger = logging.getLogger(__name__)

ITEMS_TABLE = "wish_items"
REBALANCE_FUNCTION = "rebalance_wishlist_items"

# Numeric columns are cast to text so Decimal values survive the JSON trip
ITEM_COLUMNS = (
    "id, wishlist_id, name, url, price_amount::text, price_currency, notes, "
    "priority::text, created_at, updated_at, is_deleted, deleted_at"
)


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Provides actionable error messages:
    "Errors should tell HOW to fix, not just WHAT failed."
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with microseconds and a 'Z' suffix."""
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def after_cursor_filter(after: SortPosition) -> str:
    """
    PostgREST `or` filter for rows that sort strictly after a cursor.

    Mirrors the SQL predicate:
        priority < p
        OR (priority = p AND created_at < t)
        OR (priority = p AND created_at = t AND id < i)

    Values are double-quoted because keys and timestamps contain reserved
    filter characters (`.` and `:`).
    """
    priority = f'"{format_priority(after.priority)}"'
    created_at = f'"{format_timestamp(after.created_at)}"'
    return (
        f"priority.lt.{priority},"
        f"and(priority.eq.{priority},created_at.lt.{created_at}),"
        f"and(priority.eq.{priority},created_at.eq.{created_at},id.lt.{after.id})"
    )


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.

    Example:
        # First page of a wishlist, one extra row to detect the next page
        rows = SupabaseClient.fetch_items_after(wishlist_id, after=None, limit=21)

        # Renumber a wishlist atomically
        count = SupabaseClient.rebalance_items(wishlist_id, Decimal("1024"))
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS).
        This is appropriate for server-side operations.

        Returns:
            Client: Supabase client instance

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
                raise SupabaseClientError(
                    message="Supabase is not configured",
                    code="CLIENT_NOT_CONFIGURED",
                    suggestion="Set SUPABASE_URL and SUPABASE_SERVICE_KEY, or use ITEM_STORE_BACKEND=memory"
                )
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        """Convert UUID to string for queries."""
        return str(uuid_value) if isinstance(uuid_value, UUID) else uuid_value

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_items_after(
        cls,
        wishlist_id: str | UUID,
        after: SortPosition | None,
        limit: int,
    ) -> list[dict[str, Any]]:
        """
        Fetch live items in list order, strictly after a cursor position.

        The three-part cursor comparison runs inside the query, so ties on
        priority or created_at never drop or repeat rows.

        Args:
            wishlist_id: The wishlist UUID
            after: Sort tuple of the last row already seen, or None
            limit: Maximum rows to return

        Returns:
            List of item rows ordered by priority, created_at, id (all desc)

        Raises:
            SupabaseClientError: If query fails
        """
        client = cls.get_client()
        wishlist_id_str = cls._normalize_uuid(wishlist_id)

        try:
            query = (
                client.table(ITEMS_TABLE)
                .select(ITEM_COLUMNS)
                .eq("wishlist_id", wishlist_id_str)
                .eq("is_deleted", False)
            )

            if after is not None:
                query = query.or_(after_cursor_filter(after))

            response = (
                query
                .order("priority", desc=True)
                .order("created_at", desc=True)
                .order("id", desc=True)
                .limit(limit)
                .execute()
            )

            rows = response.data or []
            logger.debug(f"Fetched {len(rows)} items for wishlist {wishlist_id_str}")
            return rows

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch wishlist items: {e}",
                code="FETCH_ITEMS_FAILED",
                suggestion="Check that the wish_items table exists and is accessible",
                details={"wishlist_id": wishlist_id_str, "limit": limit}
            )

    @classmethod
    def fetch_item(cls, wishlist_id: str | UUID, item_id: int) -> dict[str, Any] | None:
        """
        Fetch one live item by id.

        Returns:
            Item row, or None if it doesn't exist, is deleted, or belongs
            to another wishlist

        Raises:
            SupabaseClientError: If query fails
        """
        client = cls.get_client()
        wishlist_id_str = cls._normalize_uuid(wishlist_id)

        try:
            response = (
                client.table(ITEMS_TABLE)
                .select(ITEM_COLUMNS)
                .eq("wishlist_id", wishlist_id_str)
                .eq("id", item_id)
                .eq("is_deleted", False)
                .limit(1)
                .execute()
            )

            rows = response.data or []
            return rows[0] if rows else None

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch item: {e}",
                code="FETCH_ITEM_FAILED",
                suggestion="Check that the item_id exists",
                details={"wishlist_id": wishlist_id_str, "item_id": item_id}
            )

    @classmethod
    def fetch_bottom_item(cls, wishlist_id: str | UUID) -> dict[str, Any] | None:
        """
        Fetch the least important live item (last in list order).

        Used to append new items below everything else.
        """
        client = cls.get_client()
        wishlist_id_str = cls._normalize_uuid(wishlist_id)

        try:
            response = (
                client.table(ITEMS_TABLE)
                .select(ITEM_COLUMNS)
                .eq("wishlist_id", wishlist_id_str)
                .eq("is_deleted", False)
                .order("priority", desc=False)
                .order("created_at", desc=False)
                .order("id", desc=False)
                .limit(1)
                .execute()
            )

            rows = response.data or []
            return rows[0] if rows else None

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch bottom item: {e}",
                code="FETCH_ITEMS_FAILED",
                details={"wishlist_id": wishlist_id_str}
            )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @classmethod
    def insert_item(cls, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a new item row.

        `priority` and `price_amount` must already be fixed-point strings.
        The returned row carries those same strings, not the float values
        PostgREST echoes back.

        Raises:
            SupabaseClientError: If insert fails
        """
        client = cls.get_client()

        try:
            response = (
                client.table(ITEMS_TABLE)
                .insert(data)
                .execute()
            )

            if response.data:
                row = dict(response.data[0])
                row["priority"] = data["priority"]
                row["price_amount"] = data.get("price_amount")
                return row
            raise SupabaseClientError(
                message="Insert returned no data",
                code="INSERT_NO_DATA"
            )

        except SupabaseClientError:
            raise
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to insert item: {e}",
                code="INSERT_ITEM_FAILED",
                details={"wishlist_id": data.get("wishlist_id")}
            )

    @classmethod
    def update_item(
        cls,
        wishlist_id: str | UUID,
        item_id: int,
        changes: dict[str, Any],
    ) -> bool:
        """
        Update one live item.

        Returns:
            True if a row was updated, False if the item was not found

        Raises:
            SupabaseClientError: If update fails
        """
        client = cls.get_client()
        wishlist_id_str = cls._normalize_uuid(wishlist_id)

        try:
            response = (
                client.table(ITEMS_TABLE)
                .update(changes)
                .eq("wishlist_id", wishlist_id_str)
                .eq("id", item_id)
                .eq("is_deleted", False)
                .execute()
            )
            return bool(response.data)

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update item: {e}",
                code="UPDATE_ITEM_FAILED",
                details={"wishlist_id": wishlist_id_str, "item_id": item_id}
            )

    @classmethod
    def rebalance_items(cls, wishlist_id: str | UUID, step: Decimal) -> int:
        """
        Renumber all live items of a wishlist in one transaction.

        Calls the rebalance_wishlist_items() Postgres function, which locks
        the rows, reads them in list order and writes (N - i) * step.

        Returns:
            Number of items renumbered

        Raises:
            SupabaseClientError: If the function call fails (no keys change)
        """
        client = cls.get_client()
        wishlist_id_str = cls._normalize_uuid(wishlist_id)

        try:
            response = client.rpc(
                REBALANCE_FUNCTION,
                {
                    "p_wishlist_id": wishlist_id_str,
                    "p_step": format_priority(step),
                    "p_now": format_timestamp(datetime.now(timezone.utc)),
                },
            ).execute()

            return int(response.data or 0)

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to rebalance wishlist: {e}",
                code="REBALANCE_FAILED",
                suggestion="Check that the rebalance_wishlist_items function is deployed (see supabase/migrations)",
                details={"wishlist_id": wishlist_id_str}
            )
