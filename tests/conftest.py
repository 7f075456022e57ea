# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up test environment variables before any imports
# - In-memory item store with a controllable clock
# - FastAPI TestClient with the store and services overridden
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("ITEM_STORE_BACKEND", "memory")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import UUID

import pytest

from core.models.item import Item
from core.services.item_service import ItemService
from core.services.item_store import InMemoryItemStore
from core.services.smart_add_service import SmartAddService


# =============================================================================
# Helpers
# =============================================================================

BASE_TIME = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def wishlist_id():
    """Wishlist used by most tests."""
    return UUID("550e8400-e29b-41d4-a716-446655440000")


@pytest.fixture
def other_wishlist_id():
    """A second wishlist, for isolation checks."""
    return UUID("660e8400-e29b-41d4-a716-446655440001")


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store(clock):
    """Empty in-memory store on the frozen clock."""
    return InMemoryItemStore(clock=clock)


@pytest.fixture
def rebalance_scheduler():
    """Stand-in for the Celery enqueue call."""
    return MagicMock(name="rebalance_scheduler")


@pytest.fixture
def item_service(store, rebalance_scheduler):
    """ItemService with default step/epsilon and a mock scheduler."""
    return ItemService(
        store,
        page_size_default=20,
        page_size_max=50,
        rebalance_scheduler=rebalance_scheduler,
    )


@pytest.fixture
def smart_add_service(item_service):
    return SmartAddService(item_service)


@pytest.fixture
def make_item(wishlist_id):
    """
    Factory for fully built items.

    Usage:
        item = make_item(1, "2048", created_at=BASE_TIME)
    """
    def _make(
        item_id: int,
        priority: str | Decimal,
        created_at: datetime = BASE_TIME,
        updated_at: datetime | None = None,
        name: str | None = None,
        wishlist: UUID | None = None,
        is_deleted: bool = False,
    ) -> Item:
        return Item(
            id=item_id,
            wishlist_id=wishlist or wishlist_id,
            name=name or f"Item {item_id}",
            priority=priority,
            created_at=created_at,
            updated_at=updated_at or created_at,
            is_deleted=is_deleted,
        )

    return _make


@pytest.fixture
def three_items(store, make_item):
    """A, B, C at 3072, 2048, 1024 (display order)."""
    return [
        store.add(make_item(1, "3072", name="A")),
        store.add(make_item(2, "2048", name="B")),
        store.add(make_item(3, "1024", name="C")),
    ]


@pytest.fixture
def client(store, rebalance_scheduler):
    """
    TestClient with the item store and services overridden.

    Every request sees the same in-memory store as the test body.
    """
    from fastapi.testclient import TestClient

    from app.dependencies import get_item_service, get_item_store
    from app.main import app

    app.dependency_overrides[get_item_store] = lambda: store
    app.dependency_overrides[get_item_service] = lambda: ItemService(
        store,
        page_size_default=20,
        page_size_max=50,
        rebalance_scheduler=rebalance_scheduler,
    )

    yield TestClient(app)

    app.dependency_overrides.clear()
