# =============================================================================
# core/services/item_service.py - Ordered Item Operations
# =============================================================================
# Business logic for wishlist item ordering:
# - list_items: keyset-paginated reads in list order
# - create_item: explicit key, or append at the bottom
# - move_item: one Key Calculator call between two adjacent neighbours
# - delete_item: soft delete (tombstone)
# - rebalance: renumber a whole list atomically, order preserved
# - snapshot: full ordered list + fingerprint for smart add
#
# Precision exhaustion is returned as a MoveResult, not raised. When it
# happens (or is about to) a background rebalance is queued if a scheduler
# is configured.
# =============================================================================

import logging
from decimal import Decimal
from typing import Callable
from uuid import UUID

from app.exceptions import InvalidNeighborsError, ItemNotFoundError
from core.models.item import Item, ItemCreate, ItemPage, MoveItemRequest, MoveResult, MoveStatus, RebalanceResult
from core.models.smart_add import ItemSnapshot
from core.services.item_store import ItemStore
from lib.pagination import build_page, decode_cursor, normalize_limit
from lib.priority_math import (
    DEFAULT_DENSITY_EPSILON,
    DEFAULT_STEP,
    compute_insert_priority,
    format_priority,
    neighbors_too_dense,
)
from lib.staleness import compute_items_fingerprint

logger = logging.getLogger(__name__)

RebalanceScheduler = Callable[[UUID], None]


class ItemService:
    """
    Service for ordered wishlist items.

    Provides a clean interface between API routes and the item store.

    Args:
        store: Persistence backend
        step: Key spacing at the list ends and after rebalance
        epsilon: Minimum gap between neighbours before a rebalance is needed
        page_size_default: Page size when none is requested
        page_size_max: Requested page sizes are clamped to this
        rebalance_scheduler: Queues a background rebalance (None disables it)
    """

    def __init__(
        self,
        store: ItemStore,
        step: Decimal = DEFAULT_STEP,
        epsilon: Decimal = DEFAULT_DENSITY_EPSILON,
        page_size_default: int = 20,
        page_size_max: int = 50,
        rebalance_scheduler: RebalanceScheduler | None = None,
    ):
        if step <= 0:
            raise ValueError("Step must be greater than zero.")
        if epsilon <= 0:
            raise ValueError("Epsilon must be greater than zero.")

        self.store = store
        self.step = step
        self.epsilon = epsilon
        self.page_size_default = page_size_default
        self.page_size_max = page_size_max
        self.rebalance_scheduler = rebalance_scheduler

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_items(
        self,
        wishlist_id: UUID,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> ItemPage:
        """
        Get one page of a wishlist.

        A malformed cursor is treated as no cursor (first page).

        Args:
            wishlist_id: Wishlist UUID
            cursor: next_cursor from the previous page
            limit: Requested page size (clamped to page_size_max)

        Returns:
            ItemPage with items in list order and the next cursor
        """
        page_size = normalize_limit(limit, self.page_size_default, self.page_size_max)
        after = decode_cursor(cursor)

        candidates = self.store.fetch_page(wishlist_id, after, page_size)
        items, next_cursor = build_page(candidates, after, page_size)

        return ItemPage(items=items, next_cursor=next_cursor)

    def get_item(self, wishlist_id: UUID, item_id: int) -> Item:
        """
        Get a live item.

        Raises:
            ItemNotFoundError: If it doesn't exist or was deleted
        """
        item = self.store.fetch_item(wishlist_id, item_id)
        if item is None:
            raise ItemNotFoundError(str(wishlist_id), item_id)
        return item

    def snapshot(self, wishlist_id: UUID) -> ItemSnapshot:
        """Full ordered list and its fingerprint (smart add starts from this)."""
        items = self.store.fetch_all(wishlist_id)
        return ItemSnapshot(
            wishlist_id=wishlist_id,
            items=items,
            fingerprint=compute_items_fingerprint(items),
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create_item(self, wishlist_id: UUID, draft: ItemCreate) -> Item:
        """
        Add an item.

        Uses draft.priority when given. Otherwise the item goes below the
        current bottom item (or gets 0 in an empty list).
        """
        if draft.priority is not None:
            priority = draft.priority
        else:
            bottom = self.store.fetch_bottom_priority(wishlist_id)
            priority = compute_insert_priority(bottom, None, self.step)

        item = self.store.insert_item(wishlist_id, draft, priority)
        logger.info(f"Created item {item.id} in wishlist {wishlist_id} at {format_priority(priority)}")
        return item

    def move_item(self, wishlist_id: UUID, item_id: int, request: MoveItemRequest) -> MoveResult:
        """
        Move an item between two neighbours with a single key change.

        The neighbours are checked against the live order with the moved item
        taken out: above/below must be adjacent, a missing above means the top
        of the list and a missing below means the bottom.

        Args:
            wishlist_id: Wishlist UUID
            item_id: Item being moved
            request: Ids of the items that should end up directly above/below

        Returns:
            MoveResult with status MOVED, or PRECISION_EXHAUSTED when the
            neighbours are too close (nothing is written in that case)

        Raises:
            ItemNotFoundError: If the item or a neighbour doesn't exist
            InvalidNeighborsError: If the neighbours are the item itself, are
                given in the wrong order, or don't surround a single gap
        """
        above_id, below_id = request.above_item_id, request.below_item_id
        if item_id in (above_id, below_id):
            raise InvalidNeighborsError("an item can't be its own neighbour", above_id, below_id)

        live = self.store.fetch_all(wishlist_id)
        if not any(item.id == item_id for item in live):
            raise ItemNotFoundError(str(wishlist_id), item_id)

        others = [item for item in live if item.id != item_id]
        index = {item.id: i for i, item in enumerate(others)}
        for neighbour_id in (above_id, below_id):
            if neighbour_id is not None and neighbour_id not in index:
                raise ItemNotFoundError(str(wishlist_id), neighbour_id)

        above = others[index[above_id]] if above_id is not None else None
        below = others[index[below_id]] if below_id is not None else None
        self._check_gap(index, len(others), above_id, below_id)

        prev_priority = above.priority if above else None
        next_priority = below.priority if below else None

        if neighbors_too_dense(prev_priority, next_priority, self.epsilon):
            logger.warning(
                f"Precision exhausted moving item {item_id} in wishlist {wishlist_id} "
                f"between {above_id} and {below_id}"
            )
            scheduled = self.schedule_rebalance(wishlist_id)
            return MoveResult(status=MoveStatus.PRECISION_EXHAUSTED, rebalance_scheduled=scheduled)

        priority = compute_insert_priority(prev_priority, next_priority, self.step)
        moved = self.store.update_priority(wishlist_id, item_id, priority)
        if moved is None:
            raise ItemNotFoundError(str(wishlist_id), item_id)

        logger.info(f"Moved item {item_id} in wishlist {wishlist_id} to {format_priority(priority)}")

        scheduled = False
        if self.is_crowded(prev_priority, priority, next_priority):
            scheduled = self.schedule_rebalance(wishlist_id)

        return MoveResult(status=MoveStatus.MOVED, item=moved, rebalance_scheduled=scheduled)

    @staticmethod
    def _check_gap(
        index: dict[int, int],
        size: int,
        above_id: int | None,
        below_id: int | None,
    ) -> None:
        """Raise InvalidNeighborsError unless above/below bound exactly one gap."""
        if above_id is not None and below_id is not None:
            if index[above_id] > index[below_id]:
                raise InvalidNeighborsError("above_item_id must come before below_item_id", above_id, below_id)
            if index[below_id] != index[above_id] + 1:
                raise InvalidNeighborsError("the neighbours are not next to each other", above_id, below_id)
        elif above_id is None and index[below_id] != 0:
            raise InvalidNeighborsError(
                "below_item_id must be the first item when above_item_id is omitted", above_id, below_id
            )
        elif below_id is None and index[above_id] != size - 1:
            raise InvalidNeighborsError(
                "above_item_id must be the last item when below_item_id is omitted", above_id, below_id
            )

    def delete_item(self, wishlist_id: UUID, item_id: int) -> None:
        """
        Soft-delete an item. It stays stored as a tombstone.

        Raises:
            ItemNotFoundError: If the item doesn't exist or is already deleted
        """
        if not self.store.soft_delete(wishlist_id, item_id):
            raise ItemNotFoundError(str(wishlist_id), item_id)
        logger.info(f"Deleted item {item_id} from wishlist {wishlist_id}")

    def rebalance(self, wishlist_id: UUID) -> RebalanceResult:
        """
        Renumber every live item as (N - i) * step, keeping the order.

        The store applies all new keys in one atomic operation; on failure
        the previous keys stay in place and the error propagates.
        """
        count = self.store.rebalance(wishlist_id, self.step)
        logger.info(f"Rebalanced {count} items in wishlist {wishlist_id}")
        return RebalanceResult(rebalanced_count=count)

    # -------------------------------------------------------------------------
    # Density Helpers
    # -------------------------------------------------------------------------

    def is_crowded(
        self,
        prev_priority: Decimal | None,
        priority: Decimal,
        next_priority: Decimal | None,
    ) -> bool:
        """True when a freshly placed key left no safe room on either side."""
        return (
            neighbors_too_dense(prev_priority, priority, self.epsilon)
            or neighbors_too_dense(priority, next_priority, self.epsilon)
        )

    def schedule_rebalance(self, wishlist_id: UUID) -> bool:
        """
        Queue a background rebalance.

        Returns:
            True if a job was queued. Failures to enqueue are logged and
            reported as False; the caller's request still succeeds.
        """
        if self.rebalance_scheduler is None:
            return False

        try:
            self.rebalance_scheduler(wishlist_id)
        except Exception as e:
            logger.error(f"Failed to queue rebalance for wishlist {wishlist_id}: {e}")
            return False

        logger.info(f"Queued background rebalance for wishlist {wishlist_id}")
        return True
