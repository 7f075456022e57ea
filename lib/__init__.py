# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains the ordering primitives and the database wrapper:
# - priority_math.py: Key Calculator and Density Monitor (exact Decimal keys)
# - pagination.py: Sort tuple, cursor codec and keyset page cutting
# - binary_insert.py: Binary-Insertion state machine (pure, immutable)
# - staleness.py: Fingerprint of an ordered list for optimistic checks
# - supabase_client.py: Typed Supabase wrapper for wish_items
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.priority_math import (
    DEFAULT_DENSITY_EPSILON,
    DEFAULT_STEP,
    PRIORITY_SCALE,
    PriorityAssignment,
    compute_insert_priority,
    compute_priority_for_position,
    format_priority,
    is_too_dense,
    neighbors_too_dense,
    parse_priority,
    plan_rebalance,
)
from lib.pagination import (
    SortPosition,
    build_page,
    decode_cursor,
    encode_cursor,
    sort_items,
    sort_position,
)
from lib.binary_insert import (
    BinaryChoice,
    BinaryInsertState,
    InvalidTransitionError,
    apply_choice,
    init_binary_insert,
    max_questions,
    undo_choice,
)
from lib.staleness import compute_items_fingerprint, has_fingerprint_changed
from lib.supabase_client import SupabaseClient, SupabaseClientError

__all__ = [
    # Keys
    "DEFAULT_DENSITY_EPSILON",
    "DEFAULT_STEP",
    "PRIORITY_SCALE",
    "PriorityAssignment",
    "compute_insert_priority",
    "compute_priority_for_position",
    "format_priority",
    "is_too_dense",
    "neighbors_too_dense",
    "parse_priority",
    "plan_rebalance",
    # Pagination
    "SortPosition",
    "build_page",
    "decode_cursor",
    "encode_cursor",
    "sort_items",
    "sort_position",
    # Binary insertion
    "BinaryChoice",
    "BinaryInsertState",
    "InvalidTransitionError",
    "apply_choice",
    "init_binary_insert",
    "max_questions",
    "undo_choice",
    # Staleness
    "compute_items_fingerprint",
    "has_fingerprint_changed",
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
]
