# =============================================================================
# app/routers/items.py - Ordered Wishlist Item Endpoints
# =============================================================================
# CRUD and ordering for the items of one wishlist:
# - list (keyset pagination, stable under concurrent edits)
# - create (explicit key or bottom of list)
# - manual move between two neighbours
# - soft delete
# - rebalance (renumber, order preserved)
# - snapshot + staleness-guarded smart add commit
#
# The services return typed results for precision exhaustion and stale
# snapshots. This module is where those become 409 responses.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response
from pydantic import BaseModel, Field

from app.dependencies import ItemServiceDep, SmartAddServiceDep
from app.exceptions import PrecisionExhaustedError, StaleSnapshotError
from core.models.item import Item, ItemCreate, ItemPage, MoveItemRequest, MoveStatus, RebalanceResult
from core.models.smart_add import FinalizeStatus, ItemSnapshot, SmartAddCommitRequest

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================

class RebalanceResponse(BaseModel):
    """Response after renumbering a wishlist."""
    wishlist_id: str = Field(..., example="550e8400-e29b-41d4-a716-446655440000")
    rebalanced_count: int = Field(..., example=3)

    model_config = {
        "json_schema_extra": {
            "example": {
                "wishlist_id": "550e8400-e29b-41d4-a716-446655440000",
                "rebalanced_count": 3,
            }
        }
    }


class SmartAddResponse(BaseModel):
    """Response after a successful smart add commit."""
    item: Item
    rebalance_scheduled: bool = Field(
        default=False,
        description="True when the new key landed close to a neighbour and a rebalance was queued"
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/{wishlist_id}/items", response_model=ItemPage)
async def list_items(
    wishlist_id: Annotated[UUID, Path(description="Wishlist UUID")],
    service: ItemServiceDep,
    cursor: Annotated[str | None, Query(description="next_cursor from the previous page")] = None,
    limit: Annotated[int | None, Query(ge=1, description="Items per page (clamped to the maximum)")] = None,
):
    """
    List items in display order.

    Ordering is priority desc, then created_at desc, then id desc. Pages
    never repeat or skip an item, even when items are added or moved
    between requests. An unreadable cursor restarts from the top.
    """
    return service.list_items(wishlist_id, cursor=cursor, limit=limit)


@router.post("/{wishlist_id}/items", response_model=Item, status_code=201)
async def create_item(
    wishlist_id: Annotated[UUID, Path(description="Wishlist UUID")],
    request: ItemCreate,
    service: ItemServiceDep,
):
    """
    Add an item.

    With `priority` the item is stored with that key. Without it the item
    goes to the bottom of the list.
    """
    return service.create_item(wishlist_id, request)


@router.get("/{wishlist_id}/items/snapshot", response_model=ItemSnapshot)
async def get_snapshot(
    wishlist_id: Annotated[UUID, Path(description="Wishlist UUID")],
    service: ItemServiceDep,
):
    """
    Full ordered list plus fingerprint.

    Used to start a smart add. Send the fingerprint back with the commit.
    """
    return service.snapshot(wishlist_id)


@router.post("/{wishlist_id}/items/smart-add", response_model=SmartAddResponse, status_code=201)
async def commit_smart_add(
    wishlist_id: Annotated[UUID, Path(description="Wishlist UUID")],
    request: SmartAddCommitRequest,
    smart_add: SmartAddServiceDep,
):
    """
    Commit a smart add at the position found by the comparisons.

    If the list changed since the snapshot, nothing is written and a 409
    STALE_SNAPSHOT comes back with the fresh snapshot in `details`. The
    client then either restarts the comparisons over it or adds the item
    without ranking.
    """
    result = smart_add.commit_at_position(
        wishlist_id,
        request.item,
        request.position,
        request.fingerprint,
    )

    if result.status is FinalizeStatus.CONFLICT:
        raise StaleSnapshotError(
            str(wishlist_id),
            fresh_snapshot=result.fresh_snapshot.model_dump(mode="json"),
        )
    if result.status is FinalizeStatus.PRECISION_EXHAUSTED:
        raise PrecisionExhaustedError(str(wishlist_id), result.rebalance_scheduled)

    return SmartAddResponse(item=result.item, rebalance_scheduled=result.rebalance_scheduled)


@router.post("/{wishlist_id}/items/rebalance", response_model=RebalanceResponse)
async def rebalance_items(
    wishlist_id: Annotated[UUID, Path(description="Wishlist UUID")],
    service: ItemServiceDep,
):
    """
    Renumber every item with evenly spaced keys.

    The order does not change. Call this after a PRECISION_EXHAUSTED error
    when no background rebalance was queued.
    """
    result: RebalanceResult = service.rebalance(wishlist_id)

    return RebalanceResponse(
        wishlist_id=str(wishlist_id),
        rebalanced_count=result.rebalanced_count,
    )


@router.patch("/{wishlist_id}/items/{item_id}/position", response_model=Item)
async def move_item(
    wishlist_id: Annotated[UUID, Path(description="Wishlist UUID")],
    item_id: Annotated[int, Path(description="Item to move")],
    request: MoveItemRequest,
    service: ItemServiceDep,
):
    """
    Move an item between two neighbours.

    Only the moved item's key changes. Leave `above_item_id` empty to move
    to the top, `below_item_id` empty to move to the bottom.
    """
    result = service.move_item(wishlist_id, item_id, request)

    if result.status is MoveStatus.PRECISION_EXHAUSTED:
        raise PrecisionExhaustedError(str(wishlist_id), result.rebalance_scheduled)

    return result.item


@router.delete("/{wishlist_id}/items/{item_id}", status_code=204, response_class=Response)
async def delete_item(
    wishlist_id: Annotated[UUID, Path(description="Wishlist UUID")],
    item_id: Annotated[int, Path(description="Item to delete")],
    service: ItemServiceDep,
):
    """
    Soft delete an item.

    The item disappears from lists and snapshots. Other keys are untouched.
    """
    service.delete_item(wishlist_id, item_id)
    return Response(status_code=204)
