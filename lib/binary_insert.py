# =============================================================================
# lib/binary_insert.py - Binary Insertion State Machine
# =============================================================================
# Finds where a new item belongs in an already sorted list by asking
# "is the new item more important than this one?" about O(log N) times.
#
# The state is an immutable value; every transition returns a new state:
#
#   state = init_binary_insert(len(items))
#   while not is_done(state):
#       shown = items[current_mid(state)]
#       state = apply_choice(state, ask_user(shown))
#   position = result_position(state)
#
# `position` is the number of existing items that stay above the new one.
# =============================================================================

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BinaryChoice(str, Enum):
    """
    Answer to one comparison.

    - new: the new item outranks the item shown
    - existing: the item shown outranks the new item
    """
    NEW = "new"
    EXISTING = "existing"


class InvalidTransitionError(RuntimeError):
    """Raised when a transition is applied to a machine in the wrong state."""


class BinaryInsertState(BaseModel):
    """
    Search window over a snapshot of `total` sorted items.

    The new item belongs somewhere in [low, high]. `history` holds the
    window before each answer so undo can restore it exactly.
    """

    model_config = ConfigDict(frozen=True)

    low: int = Field(..., ge=0)
    high: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    history: tuple[tuple[int, int], ...] = ()


def init_binary_insert(total: int) -> BinaryInsertState:
    """
    Start a search over `total` items.

    An empty list starts already done with position 0.

    Raises:
        ValueError: If total is negative
    """
    if total < 0:
        raise ValueError("total must be a non-negative integer")
    return BinaryInsertState(low=0, high=total, total=total)


def is_done(state: BinaryInsertState) -> bool:
    return state.low >= state.high


def current_mid(state: BinaryInsertState) -> int | None:
    """Index of the item to show next, or None once the search is over."""
    if is_done(state):
        return None
    return (state.low + state.high) // 2


def apply_choice(state: BinaryInsertState, choice: BinaryChoice | str) -> BinaryInsertState:
    """
    Narrow the window with one answer.

    Raises:
        InvalidTransitionError: If the search is already done
        ValueError: If choice is not a BinaryChoice value
    """
    choice = BinaryChoice(choice)
    mid = current_mid(state)
    if mid is None:
        raise InvalidTransitionError("Cannot apply a choice: binary insertion is already done")

    history = state.history + ((state.low, state.high),)

    if choice is BinaryChoice.NEW:
        return state.model_copy(update={"high": mid, "history": history})

    return state.model_copy(update={"low": mid + 1, "history": history})


def undo_choice(state: BinaryInsertState) -> BinaryInsertState:
    """Restore the window from before the last answer. No-op at the start."""
    if not state.history:
        return state

    low, high = state.history[-1]
    return state.model_copy(update={"low": low, "high": high, "history": state.history[:-1]})


def result_position(state: BinaryInsertState) -> int:
    """
    Insertion index once the search is done.

    Raises:
        InvalidTransitionError: If questions are still pending
    """
    if not is_done(state):
        raise InvalidTransitionError("Binary insertion is not finished yet")
    return state.low


def max_questions(total: int) -> int:
    """
    Upper bound on questions for `total` items: ceil(log2(total + 1)).

    Computed with integers so large totals don't hit float rounding.
    """
    if total <= 0:
        return 0
    return total.bit_length()
