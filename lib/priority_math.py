# =============================================================================
# lib/priority_math.py - Fractional Priority Keys
# =============================================================================
# Pure arithmetic for the ordering key ("priority") of wishlist items.
#
# Keys are exact fixed-point decimals with 18 fractional digits, matching the
# numeric(38,18) column in Postgres. Higher priority = more important.
#
# - compute_insert_priority: key for a new position between two neighbours
# - is_too_dense: neighbours are too close to subdivide again
# - plan_rebalance: evenly spaced keys for a whole list, order preserved
#
# Nothing in this module touches the database.
#
# Usage:
#   from lib.priority_math import compute_insert_priority
#   key = compute_insert_priority(Decimal("2048"), Decimal("1024"))  # 1536
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Context, Decimal, InvalidOperation
from typing import Any, Iterable, Sequence

PRIORITY_SCALE = 18
# numeric(38,18) leaves 20 digits before the decimal point
PRIORITY_INTEGER_DIGITS = 20
DEFAULT_STEP = Decimal("1024")
DEFAULT_DENSITY_EPSILON = Decimal("0.000000001")

# numeric(38,18) needs 38 significant digits; sums of two keys need one more.
PRIORITY_CONTEXT = Context(prec=60, rounding=ROUND_HALF_EVEN)

_QUANTUM = Decimal(1).scaleb(-PRIORITY_SCALE)
_PRIORITY_LIMIT = Decimal(1).scaleb(PRIORITY_INTEGER_DIGITS)


def parse_priority(value: Any) -> Decimal:
    """
    Convert user or database input into a priority Decimal.

    Accepts Decimal, int, str and float. Floats go through str() so that
    0.1 becomes Decimal("0.1") and not its binary expansion.

    Raises:
        ValueError: If the value is not a finite number or has more
            integer digits than the numeric(38,18) column holds
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid priority: {value!r}")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid priority: {value!r}") from None
    else:
        raise ValueError(f"Invalid priority: {value!r}")

    if not result.is_finite():
        raise ValueError(f"Priority must be finite: {value!r}")

    if abs(result) >= _PRIORITY_LIMIT:
        raise ValueError(f"Priority out of range: {value!r} (at most {PRIORITY_INTEGER_DIGITS} integer digits)")

    try:
        return quantize_priority(result)
    except InvalidOperation:
        raise ValueError(f"Priority out of range: {value!r}") from None


def quantize_priority(value: Decimal) -> Decimal:
    """Round a Decimal to the fixed priority scale."""
    return value.quantize(_QUANTUM, context=PRIORITY_CONTEXT)


def format_priority(value: Decimal) -> str:
    """
    Render a priority as fixed-point text with exactly 18 fractional digits.

    Never uses exponent notation, so the string round-trips through
    parse_priority() and sorts the same way as the Decimal.

    Example:
        format_priority(Decimal("1E+3"))  # "1000.000000000000000000"
    """
    return format(quantize_priority(value), "f")


def compute_insert_priority(
    prev_priority: Decimal | None,
    next_priority: Decimal | None,
    step: Decimal = DEFAULT_STEP,
) -> Decimal:
    """
    Compute the key for an item placed between two neighbours.

    `prev_priority` is the neighbour above (more important, larger key) and
    `next_priority` the neighbour below. Either may be missing at the list
    boundaries.

    Args:
        prev_priority: Key of the item above, or None for the top of the list
        next_priority: Key of the item below, or None for the bottom
        step: Gap used when only one neighbour exists

    Returns:
        - 0 for an empty list
        - next + step when inserting at the top
        - prev - step when inserting at the bottom
        - the exact midpoint otherwise

    Raises:
        ValueError: If step is not positive
    """
    step = Decimal(step)
    if step <= 0:
        raise ValueError("Step must be greater than zero.")

    if prev_priority is None and next_priority is None:
        return quantize_priority(Decimal(0))

    if prev_priority is None:
        return quantize_priority(PRIORITY_CONTEXT.add(next_priority, step))

    if next_priority is None:
        return quantize_priority(PRIORITY_CONTEXT.subtract(prev_priority, step))

    total = PRIORITY_CONTEXT.add(prev_priority, next_priority)
    return quantize_priority(PRIORITY_CONTEXT.divide(total, Decimal(2)))


def compute_priority_for_position(
    priorities: Sequence[Decimal],
    position: int,
    step: Decimal = DEFAULT_STEP,
) -> Decimal:
    """
    Map an insertion index into a descending key list onto a new key.

    `position` counts how many existing items stay above the new one.
    Positions past either end are clamped to the boundary.
    """
    if not priorities:
        return compute_insert_priority(None, None, step)

    if position <= 0:
        return compute_insert_priority(None, priorities[0], step)

    if position >= len(priorities):
        return compute_insert_priority(priorities[-1], None, step)

    return compute_insert_priority(priorities[position - 1], priorities[position], step)


def is_too_dense(
    prev_priority: Decimal,
    next_priority: Decimal,
    epsilon: Decimal = DEFAULT_DENSITY_EPSILON,
) -> bool:
    """
    True when two adjacent keys are closer than `epsilon`.

    A midpoint between such keys is no longer safe; the list has to be
    rebalanced before anything is placed between them.

    Raises:
        ValueError: If epsilon is not positive
    """
    epsilon = Decimal(epsilon)
    if epsilon <= 0:
        raise ValueError("Epsilon must be greater than zero.")

    gap = PRIORITY_CONTEXT.subtract(prev_priority, next_priority).copy_abs()
    return gap < epsilon


def neighbors_too_dense(
    prev_priority: Decimal | None,
    next_priority: Decimal | None,
    epsilon: Decimal = DEFAULT_DENSITY_EPSILON,
) -> bool:
    """Density check that treats a missing neighbour as unlimited room."""
    if prev_priority is None or next_priority is None:
        return False
    return is_too_dense(prev_priority, next_priority, epsilon)


# =============================================================================
# Rebalance Planning
# =============================================================================

@dataclass(frozen=True)
class PriorityAssignment:
    """New key for one item produced by plan_rebalance()."""

    item_id: int
    priority: Decimal


def plan_rebalance(
    item_ids_in_order: Iterable[int],
    step: Decimal = DEFAULT_STEP,
) -> list[PriorityAssignment]:
    """
    Evenly spaced keys for a list that is already in display order.

    Item i (0 = most important) gets (N - i) * step, so the bottom item
    sits at `step` and the top at N * step.

    Args:
        item_ids_in_order: Item ids sorted most important first
        step: Spacing between neighbours

    Returns:
        One assignment per item, in the same order

    Raises:
        ValueError: If step is not positive
    """
    step = Decimal(step)
    if step <= 0:
        raise ValueError("Step must be greater than zero.")

    ids = list(item_ids_in_order)
    count = len(ids)

    return [
        PriorityAssignment(
            item_id=item_id,
            priority=quantize_priority(PRIORITY_CONTEXT.multiply(Decimal(count - index), step)),
        )
        for index, item_id in enumerate(ids)
    ]
