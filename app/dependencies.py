# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
#
# Tests replace get_item_store / get_item_service through
# app.dependency_overrides.
# =============================================================================

from functools import lru_cache
from typing import Annotated
from uuid import UUID

from fastapi import Depends

from app.config import settings
from core.services.item_service import ItemService
from core.services.item_store import ItemStore, build_item_store
from core.services.smart_add_service import SmartAddService


@lru_cache()
def get_item_store() -> ItemStore:
    """
    Get the item store for the configured backend.

    Cached so the in-memory backend keeps its data between requests.
    """
    return build_item_store(settings.ITEM_STORE_BACKEND, settings.ITEMS_PAGE_OVERFETCH)


def enqueue_rebalance(wishlist_id: UUID) -> None:
    """Queue a background rebalance on the maintenance queue."""
    from workers.tasks import rebalance_wishlist_items

    rebalance_wishlist_items.delay(str(wishlist_id))


def get_item_service(store: Annotated[ItemStore, Depends(get_item_store)]) -> ItemService:
    """
    Build an ItemService from settings.

    Background rebalancing is wired in only when AUTO_REBALANCE_ON_DENSITY
    is on.
    """
    return ItemService(
        store,
        step=settings.PRIORITY_STEP,
        epsilon=settings.PRIORITY_DENSITY_EPSILON,
        page_size_default=settings.ITEMS_PAGE_SIZE_DEFAULT,
        page_size_max=settings.ITEMS_PAGE_SIZE_MAX,
        rebalance_scheduler=enqueue_rebalance if settings.AUTO_REBALANCE_ON_DENSITY else None,
    )


def get_smart_add_service(items: Annotated[ItemService, Depends(get_item_service)]) -> SmartAddService:
    return SmartAddService(items)


# Type aliases for dependency injection
ItemStoreDep = Annotated[ItemStore, Depends(get_item_store)]
ItemServiceDep = Annotated[ItemService, Depends(get_item_service)]
SmartAddServiceDep = Annotated[SmartAddService, Depends(get_smart_add_service)]
