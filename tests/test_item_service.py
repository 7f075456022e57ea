# =============================================================================
# tests/test_item_service.py - ItemService Tests
# =============================================================================
# Tests for core/services/item_service.py on the in-memory store:
# - Create at the bottom or with an explicit key
# - Manual moves, invalid neighbours, precision exhaustion
# - Soft delete
# - Rebalance keeps the order and spaces keys evenly
#
# Run with: pytest tests/test_item_service.py -v
# =============================================================================

from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from app.exceptions import InvalidNeighborsError, ItemNotFoundError
from core.models.item import ItemCreate, MoveItemRequest, MoveStatus
from core.services.item_service import ItemService
from lib.priority_math import PriorityAssignment
from tests.conftest import BASE_TIME


def _names(service, wishlist_id):
    return [item.name for item in service.snapshot(wishlist_id).items]


class TestConstruction:

    @pytest.mark.parametrize("kwargs", [{"step": Decimal("0")}, {"epsilon": Decimal("-1")}])
    def test_non_positive_settings_raise(self, store, kwargs):
        with pytest.raises(ValueError):
            ItemService(store, **kwargs)


# =============================================================================
# Create
# =============================================================================

class TestCreateItem:
    """Tests for adding items."""

    def test_first_item_gets_zero(self, item_service, wishlist_id):
        item = item_service.create_item(wishlist_id, ItemCreate(name="Bike"))

        assert item.priority == Decimal("0")
        assert item.wishlist_id == wishlist_id
        assert item.created_at == BASE_TIME

    def test_new_items_go_to_the_bottom(self, item_service, wishlist_id):
        for name in ("Bike", "Kindle", "Pan"):
            item_service.create_item(wishlist_id, ItemCreate(name=name))

        items = item_service.snapshot(wishlist_id).items

        assert [item.name for item in items] == ["Bike", "Kindle", "Pan"]
        assert [item.priority for item in items] == [Decimal("0"), Decimal("-1024"), Decimal("-2048")]

    def test_explicit_priority_is_used(self, item_service, wishlist_id, three_items):
        item = item_service.create_item(wishlist_id, ItemCreate(name="Top", priority="5000"))

        assert item.priority == Decimal("5000")
        assert _names(item_service, wishlist_id)[0] == "Top"

    def test_ids_are_never_reused(self, item_service, wishlist_id, three_items):
        item_service.delete_item(wishlist_id, 3)
        item = item_service.create_item(wishlist_id, ItemCreate(name="New"))
        assert item.id == 4


# =============================================================================
# Move
# =============================================================================

class TestMoveItem:
    """Tests for manual reordering."""

    def test_move_between_neighbours(self, item_service, wishlist_id, three_items, clock):
        clock.advance(seconds=30)

        result = item_service.move_item(
            wishlist_id, 3, MoveItemRequest(above_item_id=1, below_item_id=2)
        )

        assert result.status is MoveStatus.MOVED
        assert result.item.priority == Decimal("2560")
        assert result.item.updated_at == BASE_TIME + timedelta(seconds=30)
        assert result.rebalance_scheduled is False
        assert _names(item_service, wishlist_id) == ["A", "C", "B"]

    def test_only_the_moved_item_changes(self, item_service, wishlist_id, three_items):
        item_service.move_item(wishlist_id, 3, MoveItemRequest(above_item_id=1, below_item_id=2))

        assert item_service.get_item(wishlist_id, 1) == three_items[0]
        assert item_service.get_item(wishlist_id, 2) == three_items[1]

    def test_move_to_top(self, item_service, wishlist_id, three_items):
        result = item_service.move_item(wishlist_id, 3, MoveItemRequest(below_item_id=1))

        assert result.item.priority == Decimal("4096")
        assert _names(item_service, wishlist_id) == ["C", "A", "B"]

    def test_move_to_bottom(self, item_service, wishlist_id, three_items):
        result = item_service.move_item(wishlist_id, 1, MoveItemRequest(above_item_id=3))

        assert result.item.priority == Decimal("0")
        assert _names(item_service, wishlist_id) == ["B", "C", "A"]

    def test_item_as_own_neighbour_raises(self, item_service, wishlist_id, three_items):
        with pytest.raises(InvalidNeighborsError):
            item_service.move_item(wishlist_id, 2, MoveItemRequest(above_item_id=2, below_item_id=3))

    def test_neighbours_in_wrong_order_raise(self, item_service, wishlist_id, three_items):
        with pytest.raises(InvalidNeighborsError) as exc_info:
            item_service.move_item(wishlist_id, 1, MoveItemRequest(above_item_id=3, below_item_id=2))

        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "INVALID_NEIGHBORS"

    def test_missing_item_raises(self, item_service, wishlist_id, three_items):
        with pytest.raises(ItemNotFoundError):
            item_service.move_item(wishlist_id, 99, MoveItemRequest(above_item_id=1))

    def test_missing_neighbour_raises(self, item_service, wishlist_id, three_items):
        with pytest.raises(ItemNotFoundError):
            item_service.move_item(wishlist_id, 1, MoveItemRequest(above_item_id=99))

    def test_neighbour_from_other_wishlist_raises(
        self, item_service, store, make_item, wishlist_id, other_wishlist_id, three_items
    ):
        store.add(make_item(10, "9000", wishlist=other_wishlist_id))

        with pytest.raises(ItemNotFoundError):
            item_service.move_item(wishlist_id, 1, MoveItemRequest(below_item_id=10))

    def test_non_adjacent_neighbours_raise(self, item_service, store, make_item, wishlist_id, three_items):
        store.add(make_item(4, "0", name="D"))

        with pytest.raises(InvalidNeighborsError, match="not next to each other"):
            item_service.move_item(wishlist_id, 4, MoveItemRequest(above_item_id=1, below_item_id=3))

        assert _names(item_service, wishlist_id) == ["A", "B", "C", "D"]

    def test_top_move_must_name_the_first_item(self, item_service, wishlist_id, three_items):
        with pytest.raises(InvalidNeighborsError, match="first item"):
            item_service.move_item(wishlist_id, 3, MoveItemRequest(below_item_id=2))

        assert item_service.get_item(wishlist_id, 3).priority == Decimal("1024")

    def test_bottom_move_must_name_the_last_item(self, item_service, wishlist_id, three_items):
        with pytest.raises(InvalidNeighborsError, match="last item"):
            item_service.move_item(wishlist_id, 1, MoveItemRequest(above_item_id=2))

        assert item_service.get_item(wishlist_id, 1).priority == Decimal("3072")

    def test_adjacency_ignores_the_moved_item(self, item_service, wishlist_id, three_items):
        """B sits between A and C; once B is taken out, A and C are adjacent."""
        result = item_service.move_item(wishlist_id, 2, MoveItemRequest(above_item_id=1, below_item_id=3))

        assert result.status is MoveStatus.MOVED
        assert result.item.priority == Decimal("2048")
        assert _names(item_service, wishlist_id) == ["A", "B", "C"]

    def test_moved_item_lands_directly_between_neighbours(self, item_service, store, make_item, wishlist_id, three_items):
        store.add(make_item(4, "0", name="D"))

        item_service.move_item(wishlist_id, 4, MoveItemRequest(above_item_id=2, below_item_id=3))

        assert _names(item_service, wishlist_id) == ["A", "B", "D", "C"]


class TestPrecisionExhaustion:
    """Tests for neighbours that are too close to split."""

    @pytest.fixture
    def dense_items(self, store, make_item):
        return [
            store.add(make_item(1, "10.0000000010", name="A")),
            store.add(make_item(2, "10.0000000005", name="B")),
            store.add(make_item(3, "1", name="C")),
        ]

    def test_move_returns_exhausted_and_writes_nothing(
        self, item_service, wishlist_id, dense_items, rebalance_scheduler
    ):
        result = item_service.move_item(
            wishlist_id, 3, MoveItemRequest(above_item_id=1, below_item_id=2)
        )

        assert result.status is MoveStatus.PRECISION_EXHAUSTED
        assert result.item is None
        assert result.rebalance_scheduled is True
        rebalance_scheduler.assert_called_once_with(wishlist_id)
        assert item_service.get_item(wishlist_id, 3).priority == Decimal("1")

    def test_without_scheduler_nothing_is_queued(self, store, wishlist_id, dense_items):
        service = ItemService(store)

        result = service.move_item(wishlist_id, 3, MoveItemRequest(above_item_id=1, below_item_id=2))

        assert result.status is MoveStatus.PRECISION_EXHAUSTED
        assert result.rebalance_scheduled is False

    def test_enqueue_failure_is_reported_not_raised(self, store, wishlist_id, dense_items):
        scheduler = MagicMock(side_effect=ConnectionError("broker down"))
        service = ItemService(store, rebalance_scheduler=scheduler)

        result = service.move_item(wishlist_id, 3, MoveItemRequest(above_item_id=1, below_item_id=2))

        assert result.status is MoveStatus.PRECISION_EXHAUSTED
        assert result.rebalance_scheduled is False

    def test_crowded_move_succeeds_and_queues_rebalance(
        self, item_service, store, make_item, wishlist_id, rebalance_scheduler
    ):
        """Gap 1.5e-9 can still be split, but the halves are below epsilon."""
        store.add(make_item(1, "10.0000000015", name="A"))
        store.add(make_item(2, "10", name="B"))
        store.add(make_item(3, "1", name="C"))

        result = item_service.move_item(
            wishlist_id, 3, MoveItemRequest(above_item_id=1, below_item_id=2)
        )

        assert result.status is MoveStatus.MOVED
        assert result.item.priority == Decimal("10.00000000075")
        assert result.rebalance_scheduled is True
        rebalance_scheduler.assert_called_once_with(wishlist_id)


# =============================================================================
# Delete
# =============================================================================

class TestDeleteItem:
    """Tests for soft delete."""

    def test_deleted_item_leaves_lists(self, item_service, wishlist_id, three_items):
        item_service.delete_item(wishlist_id, 2)

        assert _names(item_service, wishlist_id) == ["A", "C"]
        with pytest.raises(ItemNotFoundError):
            item_service.get_item(wishlist_id, 2)

    def test_other_keys_are_untouched(self, item_service, wishlist_id, three_items):
        item_service.delete_item(wishlist_id, 2)

        assert item_service.get_item(wishlist_id, 1).priority == Decimal("3072")
        assert item_service.get_item(wishlist_id, 3).priority == Decimal("1024")

    def test_delete_twice_raises(self, item_service, wishlist_id, three_items):
        item_service.delete_item(wishlist_id, 2)

        with pytest.raises(ItemNotFoundError):
            item_service.delete_item(wishlist_id, 2)


# =============================================================================
# Rebalance
# =============================================================================

class TestRebalance:
    """Tests for renumbering a whole list."""

    def test_dense_keys_are_respaced_in_order(self, item_service, store, make_item, wishlist_id):
        """Two equal keys (newer first) and one just below them."""
        store.add(make_item(1, "10.000000001", created_at=BASE_TIME, name="older"))
        store.add(make_item(2, "10.000000001", created_at=BASE_TIME + timedelta(seconds=1), name="newer"))
        store.add(make_item(3, "9.999999999", name="lowest"))

        result = item_service.rebalance(wishlist_id)

        items = item_service.snapshot(wishlist_id).items
        assert result.rebalanced_count == 3
        assert [item.name for item in items] == ["newer", "older", "lowest"]
        assert [item.priority for item in items] == [Decimal("3072"), Decimal("2048"), Decimal("1024")]

    def test_deleted_items_are_not_counted(self, item_service, wishlist_id, three_items):
        item_service.delete_item(wishlist_id, 1)

        result = item_service.rebalance(wishlist_id)

        assert result.rebalanced_count == 2
        assert [item.priority for item in item_service.snapshot(wishlist_id).items] == [
            Decimal("2048"), Decimal("1024"),
        ]

    def test_empty_list(self, item_service, wishlist_id):
        assert item_service.rebalance(wishlist_id).rebalanced_count == 0

    def test_rebalance_makes_room_for_a_move(self, item_service, store, make_item, wishlist_id):
        store.add(make_item(1, "10.0000000010", name="A"))
        store.add(make_item(2, "10.0000000005", name="B"))
        store.add(make_item(3, "1", name="C"))
        request = MoveItemRequest(above_item_id=1, below_item_id=2)

        assert item_service.move_item(wishlist_id, 3, request).status is MoveStatus.PRECISION_EXHAUSTED
        item_service.rebalance(wishlist_id)
        result = item_service.move_item(wishlist_id, 3, request)

        assert result.status is MoveStatus.MOVED
        assert _names(item_service, wishlist_id) == ["A", "C", "B"]

    def test_failed_rebalance_leaves_keys_intact(self, item_service, wishlist_id, three_items, clock):
        before = item_service.snapshot(wishlist_id)
        clock.advance(minutes=5)

        def fail_after_first(item_ids_in_order, step):
            first = next(iter(item_ids_in_order))
            yield PriorityAssignment(item_id=first, priority=Decimal("9999"))
            raise RuntimeError("planner crashed")

        with patch("core.services.item_store.plan_rebalance", side_effect=fail_after_first):
            with pytest.raises(RuntimeError):
                item_service.rebalance(wishlist_id)

        after = item_service.snapshot(wishlist_id)
        assert [item.priority for item in after.items] == [Decimal("3072"), Decimal("2048"), Decimal("1024")]
        assert [item.updated_at for item in after.items] == [BASE_TIME] * 3
        assert after.fingerprint == before.fingerprint


class TestSnapshot:

    def test_snapshot_of_empty_list(self, item_service, wishlist_id):
        snapshot = item_service.snapshot(wishlist_id)

        assert snapshot.items == []
        assert snapshot.fingerprint == "empty"
        assert snapshot.wishlist_id == wishlist_id
