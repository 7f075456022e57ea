# =============================================================================
# core/services/item_store.py - Ordered Item Storage
# =============================================================================
# The persistence seam for wishlist items. Services only talk to the
# ItemStore protocol; two implementations are provided:
#
# - SupabaseItemStore: wish_items table through lib.supabase_client
# - InMemoryItemStore: process-local store (development, tests, demos)
#
# Every read returns live (non-deleted) items only. Page reads return
# candidates strictly after a cursor in list order; the service makes the
# final page-boundary decision with lib.pagination.build_page().
# =============================================================================

from __future__ import annotations

import itertools
import logging
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Protocol
from uuid import UUID

from core.models.item import Item, ItemCreate
from lib.pagination import SortPosition, sort_items, sort_position
from lib.priority_math import format_priority, plan_rebalance
from lib.supabase_client import SupabaseClient, format_timestamp

logger = logging.getLogger(__name__)

# Batch size for full-list reads against Supabase (PostgREST max-rows default)
FETCH_ALL_BATCH_SIZE = 1000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ItemStore(Protocol):
    """Operations the ordering engine needs from persistence."""

    def fetch_page(self, wishlist_id: UUID, after: SortPosition | None, limit: int) -> list[Item]:
        """At least `limit` live items strictly after `after` (when that many exist)."""
        ...

    def fetch_all(self, wishlist_id: UUID) -> list[Item]:
        """Every live item, in list order."""
        ...

    def fetch_item(self, wishlist_id: UUID, item_id: int) -> Item | None:
        ...

    def fetch_bottom_priority(self, wishlist_id: UUID) -> Decimal | None:
        """Key of the last item in list order, or None for an empty list."""
        ...

    def insert_item(self, wishlist_id: UUID, draft: ItemCreate, priority: Decimal) -> Item:
        ...

    def update_priority(self, wishlist_id: UUID, item_id: int, priority: Decimal) -> Item | None:
        ...

    def soft_delete(self, wishlist_id: UUID, item_id: int) -> bool:
        ...

    def rebalance(self, wishlist_id: UUID, step: Decimal) -> int:
        """Renumber every live item atomically. Returns the count touched."""
        ...


# =============================================================================
# Supabase
# =============================================================================

class SupabaseItemStore:
    """
    ItemStore backed by the wish_items table.

    `overfetch` extra rows are requested per page on top of limit + 1.
    """

    def __init__(self, overfetch: int = 0):
        self.overfetch = max(0, overfetch)

    def fetch_page(self, wishlist_id: UUID, after: SortPosition | None, limit: int) -> list[Item]:
        rows = SupabaseClient.fetch_items_after(wishlist_id, after, limit + 1 + self.overfetch)
        return [Item.from_db_row(row) for row in rows]

    def fetch_all(self, wishlist_id: UUID) -> list[Item]:
        items: list[Item] = []
        after: SortPosition | None = None

        while True:
            rows = SupabaseClient.fetch_items_after(wishlist_id, after, FETCH_ALL_BATCH_SIZE)
            batch = sort_items(Item.from_db_row(row) for row in rows)
            items.extend(batch)
            if len(rows) < FETCH_ALL_BATCH_SIZE:
                return items
            after = sort_position(batch[-1])

    def fetch_item(self, wishlist_id: UUID, item_id: int) -> Item | None:
        row = SupabaseClient.fetch_item(wishlist_id, item_id)
        return Item.from_db_row(row) if row else None

    def fetch_bottom_priority(self, wishlist_id: UUID) -> Decimal | None:
        row = SupabaseClient.fetch_bottom_item(wishlist_id)
        return Item.from_db_row(row).priority if row else None

    def insert_item(self, wishlist_id: UUID, draft: ItemCreate, priority: Decimal) -> Item:
        now = format_timestamp(utc_now())
        data = {
            "wishlist_id": str(wishlist_id),
            "name": draft.name,
            "url": draft.url,
            "price_amount": None if draft.price_amount is None else str(draft.price_amount),
            "price_currency": draft.price_currency,
            "notes": draft.notes,
            "priority": format_priority(priority),
            "created_at": now,
            "updated_at": now,
            "is_deleted": False,
        }
        return Item.from_db_row(SupabaseClient.insert_item(data))

    def update_priority(self, wishlist_id: UUID, item_id: int, priority: Decimal) -> Item | None:
        changes = {
            "priority": format_priority(priority),
            "updated_at": format_timestamp(utc_now()),
        }
        if not SupabaseClient.update_item(wishlist_id, item_id, changes):
            return None
        return self.fetch_item(wishlist_id, item_id)

    def soft_delete(self, wishlist_id: UUID, item_id: int) -> bool:
        now = format_timestamp(utc_now())
        changes = {"is_deleted": True, "deleted_at": now, "updated_at": now}
        return SupabaseClient.update_item(wishlist_id, item_id, changes)

    def rebalance(self, wishlist_id: UUID, step: Decimal) -> int:
        return SupabaseClient.rebalance_items(wishlist_id, step)


# =============================================================================
# In-Memory
# =============================================================================

class InMemoryItemStore:
    """
    Thread-safe ItemStore kept in a dict.

    Writes replace whole Item objects under one lock, so readers never see
    a half-applied change. Ids come from a counter and are never reused.

    Args:
        clock: Source of "now" for created_at/updated_at (tests pin it)
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._items: dict[int, Item] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def _live(self, wishlist_id: UUID) -> list[Item]:
        return [
            item for item in self._items.values()
            if item.wishlist_id == wishlist_id and not item.is_deleted
        ]

    def add(self, item: Item) -> Item:
        """Put a fully built item into the store (fixtures and imports)."""
        with self._lock:
            self._items[item.id] = item
            self._ids = itertools.count(max(self._items) + 1)
            return item

    def fetch_page(self, wishlist_id: UUID, after: SortPosition | None, limit: int) -> list[Item]:
        with self._lock:
            ordered = sort_items(self._live(wishlist_id))
        if after is not None:
            ordered = [item for item in ordered if sort_position(item) < after]
        return ordered[:limit + 1]

    def fetch_all(self, wishlist_id: UUID) -> list[Item]:
        with self._lock:
            return sort_items(self._live(wishlist_id))

    def fetch_item(self, wishlist_id: UUID, item_id: int) -> Item | None:
        with self._lock:
            item = self._items.get(item_id)
        if item is None or item.wishlist_id != wishlist_id or item.is_deleted:
            return None
        return item

    def fetch_bottom_priority(self, wishlist_id: UUID) -> Decimal | None:
        items = self.fetch_all(wishlist_id)
        return items[-1].priority if items else None

    def insert_item(self, wishlist_id: UUID, draft: ItemCreate, priority: Decimal) -> Item:
        with self._lock:
            now = self._clock()
            item = Item(
                id=next(self._ids),
                wishlist_id=wishlist_id,
                priority=priority,
                created_at=now,
                updated_at=now,
                **draft.model_dump(exclude={"priority"}),
            )
            self._items[item.id] = item
            return item

    def update_priority(self, wishlist_id: UUID, item_id: int, priority: Decimal) -> Item | None:
        with self._lock:
            item = self.fetch_item(wishlist_id, item_id)
            if item is None:
                return None
            updated = item.model_copy(update={"priority": priority, "updated_at": self._clock()})
            self._items[item_id] = updated
            return updated

    def soft_delete(self, wishlist_id: UUID, item_id: int) -> bool:
        with self._lock:
            item = self.fetch_item(wishlist_id, item_id)
            if item is None:
                return False
            now = self._clock()
            self._items[item_id] = item.model_copy(
                update={"is_deleted": True, "deleted_at": now, "updated_at": now}
            )
            return True

    def rebalance(self, wishlist_id: UUID, step: Decimal) -> int:
        with self._lock:
            ordered = sort_items(self._live(wishlist_id))
            now = self._clock()
            assignments = plan_rebalance((item.id for item in ordered), step)

            # Build every replacement first, then swap them in together
            replacements = {
                assignment.item_id: self._items[assignment.item_id].model_copy(
                    update={"priority": assignment.priority, "updated_at": now}
                )
                for assignment in assignments
            }
            self._items.update(replacements)
            return len(replacements)


def build_item_store(backend: str, overfetch: int = 0) -> ItemStore:
    """
    Create the store selected by ITEM_STORE_BACKEND.

    Raises:
        ValueError: If the backend name is unknown
    """
    if backend == "supabase":
        return SupabaseItemStore(overfetch=overfetch)
    if backend == "memory":
        logger.warning("Using in-memory item store; data is lost on restart")
        return InMemoryItemStore()
    raise ValueError(f"Unknown item store backend: {backend}")
