# =============================================================================
# tests/test_supabase_store.py - Supabase Wrapper & Store Tests
# =============================================================================
# Tests for lib/supabase_client.py and SupabaseItemStore with the Supabase
# client mocked out:
# - The keyset filter sent to PostgREST
# - Query ordering and limits
# - Decimal keys survive the round trip
# - Rebalance goes through the Postgres function
#
# Run with: pytest tests/test_supabase_store.py -v
# =============================================================================

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, call, patch

import pytest

from core.models.item import ItemCreate
from core.services.item_store import SupabaseItemStore
from lib.pagination import SortPosition
from lib.supabase_client import (
    ITEMS_TABLE,
    REBALANCE_FUNCTION,
    SupabaseClient,
    SupabaseClientError,
    after_cursor_filter,
)

WISHLIST_ID = "550e8400-e29b-41d4-a716-446655440000"


def make_row(item_id, priority, created_at="2024-01-15T10:00:00+00:00", **overrides):
    row = {
        "id": item_id,
        "wishlist_id": WISHLIST_ID,
        "name": f"Item {item_id}",
        "url": None,
        "price_amount": None,
        "price_currency": None,
        "notes": None,
        "priority": priority,
        "created_at": created_at,
        "updated_at": created_at,
        "is_deleted": False,
        "deleted_at": None,
    }
    row.update(overrides)
    return row


@pytest.fixture
def query():
    """A PostgREST query builder whose chain methods return itself."""
    builder = MagicMock(name="query")
    for method in ("select", "eq", "or_", "order", "limit", "insert", "update"):
        getattr(builder, method).return_value = builder
    builder.execute.return_value = MagicMock(data=[])
    return builder


@pytest.fixture
def supabase(query):
    """Patch SupabaseClient.get_client with a mock client."""
    client = MagicMock(name="client")
    client.table.return_value = query
    with patch.object(SupabaseClient, "get_client", return_value=client):
        yield client


# =============================================================================
# Keyset Filter
# =============================================================================

class TestAfterCursorFilter:
    """Tests for the PostgREST `or` filter."""

    def test_three_part_predicate(self):
        after = SortPosition(Decimal("10"), datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc), 7)

        assert after_cursor_filter(after) == (
            'priority.lt."10.000000000000000000",'
            'and(priority.eq."10.000000000000000000",created_at.lt."2024-01-15T10:00:00.000000Z"),'
            'and(priority.eq."10.000000000000000000",created_at.eq."2024-01-15T10:00:00.000000Z",id.lt.7)'
        )

    def test_negative_tiny_key_uses_fixed_point(self):
        after = SortPosition(Decimal("-1E-18"), datetime(2024, 1, 15, tzinfo=timezone.utc), 1)
        assert 'priority.lt."-0.000000000000000001",' in after_cursor_filter(after)


# =============================================================================
# Reads
# =============================================================================

class TestFetchItemsAfter:
    """Tests for SupabaseClient.fetch_items_after()."""

    def test_first_page_query(self, supabase, query):
        SupabaseClient.fetch_items_after(WISHLIST_ID, None, 21)

        supabase.table.assert_called_once_with(ITEMS_TABLE)
        query.eq.assert_has_calls([call("wishlist_id", WISHLIST_ID), call("is_deleted", False)])
        query.or_.assert_not_called()
        assert query.order.call_args_list == [
            call("priority", desc=True),
            call("created_at", desc=True),
            call("id", desc=True),
        ]
        query.limit.assert_called_once_with(21)

    def test_numeric_columns_are_selected_as_text(self, supabase, query):
        SupabaseClient.fetch_items_after(WISHLIST_ID, None, 5)

        columns = query.select.call_args.args[0]
        assert "priority::text" in columns
        assert "price_amount::text" in columns

    def test_cursor_adds_or_filter(self, supabase, query):
        after = SortPosition(Decimal("2048"), datetime(2024, 1, 15, tzinfo=timezone.utc), 3)

        SupabaseClient.fetch_items_after(WISHLIST_ID, after, 5)

        query.or_.assert_called_once_with(after_cursor_filter(after))

    def test_query_failure_is_wrapped(self, supabase, query):
        query.execute.side_effect = RuntimeError("connection reset")

        with pytest.raises(SupabaseClientError) as exc_info:
            SupabaseClient.fetch_items_after(WISHLIST_ID, None, 5)

        assert exc_info.value.code == "FETCH_ITEMS_FAILED"


class TestGetClient:
    """Tests for client configuration."""

    def test_missing_configuration_raises(self):
        from app.config import settings

        with patch.object(SupabaseClient, "_instance", None), \
                patch.object(settings, "SUPABASE_URL", None):
            with pytest.raises(SupabaseClientError) as exc_info:
                SupabaseClient.get_client()

        assert exc_info.value.code == "CLIENT_NOT_CONFIGURED"


# =============================================================================
# SupabaseItemStore
# =============================================================================

class TestSupabaseItemStore:
    """Tests for the Supabase-backed ItemStore."""

    def test_fetch_page_overfetches(self, supabase, query):
        store = SupabaseItemStore(overfetch=5)

        store.fetch_page(WISHLIST_ID, None, 20)

        query.limit.assert_called_once_with(26)

    def test_rows_keep_exact_keys(self, supabase, query):
        query.execute.return_value = MagicMock(data=[make_row(1, "10.000000000000000001")])

        items = SupabaseItemStore().fetch_page(WISHLIST_ID, None, 20)

        assert items[0].priority == Decimal("10.000000000000000001")

    def test_fetch_all_follows_batches(self, supabase, query):
        batches = [
            [make_row(1, "3"), make_row(2, "2")],
            [make_row(3, "1")],
        ]
        with patch("core.services.item_store.FETCH_ALL_BATCH_SIZE", 2), \
                patch.object(SupabaseClient, "fetch_items_after", side_effect=batches) as fetch:
            items = SupabaseItemStore().fetch_all(WISHLIST_ID)

        assert [item.id for item in items] == [1, 2, 3]
        first_after = fetch.call_args_list[0].args[1]
        second_after = fetch.call_args_list[1].args[1]
        assert first_after is None
        assert second_after.id == 2
        assert second_after.priority == Decimal("2")

    def test_insert_sends_fixed_point_strings(self, supabase, query):
        # PostgREST echoes numerics back as floats
        query.execute.return_value = MagicMock(data=[make_row(9, 1536.5, price_amount=349.9, price_currency="EUR")])
        draft = ItemCreate(name="Item 9", price_amount="349.90", price_currency="EUR")

        item = SupabaseItemStore().insert_item(WISHLIST_ID, draft, Decimal("1536.5"))

        sent = query.insert.call_args.args[0]
        assert sent["priority"] == "1536.500000000000000000"
        assert sent["price_amount"] == "349.90"
        assert sent["wishlist_id"] == WISHLIST_ID
        assert item.priority == Decimal("1536.5")
        assert item.price_amount == Decimal("349.90")

    def test_soft_delete_marks_tombstone(self, supabase, query):
        query.execute.return_value = MagicMock(data=[make_row(1, "1")])

        assert SupabaseItemStore().soft_delete(WISHLIST_ID, 1) is True

        changes = query.update.call_args.args[0]
        assert changes["is_deleted"] is True
        assert changes["deleted_at"] == changes["updated_at"]

    def test_update_missing_item_returns_none(self, supabase, query):
        query.execute.return_value = MagicMock(data=[])

        assert SupabaseItemStore().update_priority(WISHLIST_ID, 99, Decimal("1")) is None

    def test_rebalance_calls_postgres_function(self, supabase):
        supabase.rpc.return_value.execute.return_value = MagicMock(data=3)

        count = SupabaseItemStore().rebalance(WISHLIST_ID, Decimal("1024"))

        assert count == 3
        name, params = supabase.rpc.call_args.args
        assert name == REBALANCE_FUNCTION
        assert params["p_wishlist_id"] == WISHLIST_ID
        assert params["p_step"] == "1024.000000000000000000"
        assert params["p_now"].endswith("Z")

    def test_rebalance_failure_is_wrapped(self, supabase):
        supabase.rpc.return_value.execute.side_effect = RuntimeError("deadlock detected")

        with pytest.raises(SupabaseClientError):
            SupabaseItemStore().rebalance(WISHLIST_ID, Decimal("1024"))
