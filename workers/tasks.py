# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Defines background maintenance tasks for wishlist ordering.
#
# Tasks:
# - rebalance_wishlist_items: renumber a wishlist whose keys got too dense
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from celery import shared_task

logger = logging.getLogger(__name__)


def build_worker_item_service():
    """
    Build an ItemService from settings, without a rebalance scheduler.

    The worker is the thing doing the rebalancing, so it never queues
    another one.
    """
    from app.config import settings
    from core.services.item_service import ItemService
    from core.services.item_store import build_item_store

    store = build_item_store(settings.ITEM_STORE_BACKEND, settings.ITEMS_PAGE_OVERFETCH)
    return ItemService(
        store,
        step=settings.PRIORITY_STEP,
        epsilon=settings.PRIORITY_DENSITY_EPSILON,
        page_size_default=settings.ITEMS_PAGE_SIZE_DEFAULT,
        page_size_max=settings.ITEMS_PAGE_SIZE_MAX,
    )


# =============================================================================
# Rebalance Task
# =============================================================================

@shared_task(bind=True, name="workers.tasks.rebalance_wishlist_items")
def rebalance_wishlist_items(self, wishlist_id: str) -> dict[str, Any]:
    """
    Renumber all live items of a wishlist, keeping their order.

    Queued by the API when a move or smart add finds neighbouring keys
    closer than PRIORITY_DENSITY_EPSILON. Safe to run more than once: a
    rebalance never changes the order, only the key values.

    Args:
        wishlist_id: The wishlist UUID

    Returns:
        Dict with:
        - wishlist_id: str
        - rebalanced_count: int

    Raises:
        Exception: If the store fails (Celery records the failure; keys
            are left as they were)
    """
    logger.info(f"Rebalancing wishlist {wishlist_id}")

    service = build_worker_item_service()
    result = service.rebalance(UUID(wishlist_id))

    return {
        "wishlist_id": wishlist_id,
        "rebalanced_count": result.rebalanced_count,
    }
