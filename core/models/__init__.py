# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - item.py: Wishlist items, pages, moves, rebalance results
# - smart_add.py: Snapshot, smart add session and finalize results
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Item Models - Ordered wishlist items
# -----------------------------------------------------------------------------
from .item import (
    Item,
    ItemCreate,
    ItemFields,
    ItemPage,
    MoveItemRequest,
    MoveResult,
    MoveStatus,
    Priority,
    RebalanceResult,
)

# -----------------------------------------------------------------------------
# Smart Add Models - Comparison-driven insertion
# -----------------------------------------------------------------------------
from .smart_add import (
    ConflictResolution,
    FinalizeResult,
    FinalizeStatus,
    ItemSnapshot,
    SmartAddCommitRequest,
    SmartAddProgress,
    SmartAddSession,
    WizardPhase,
)

__all__ = [
    # Item
    "Item",
    "ItemCreate",
    "ItemFields",
    "ItemPage",
    "MoveItemRequest",
    "MoveResult",
    "MoveStatus",
    "Priority",
    "RebalanceResult",
    # Smart Add
    "ConflictResolution",
    "FinalizeResult",
    "FinalizeStatus",
    "ItemSnapshot",
    "SmartAddCommitRequest",
    "SmartAddProgress",
    "SmartAddSession",
    "WizardPhase",
]
