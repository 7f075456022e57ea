# =============================================================================
# core/models/smart_add.py - Smart Add Wizard Schemas
# =============================================================================
# Smart add places a new item by asking the user a few "which matters more?"
# questions instead of asking for a number.
#
# Phases:
#   comparing -> finalizing -> committed
#                          \-> restarted_with_fresh_snapshot -> comparing ...
#                          \-> cancelled_to_manual_entry
#   comparing -> cancelled_to_manual_entry   (user cancels, nothing written)
#
# A SmartAddSession is immutable. choose(), go_back() and cancel() return a
# new session and never touch the store. Only SmartAddService.start() and
# SmartAddService.finalize() do I/O.
# =============================================================================

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from lib.binary_insert import (
    BinaryChoice,
    BinaryInsertState,
    InvalidTransitionError,
    apply_choice,
    current_mid,
    init_binary_insert,
    is_done,
    max_questions,
    result_position,
    undo_choice,
)
from .item import Item, ItemCreate


class WizardPhase(str, Enum):
    """Where a smart add session currently is."""
    COMPARING = "comparing"
    FINALIZING = "finalizing"
    COMMITTED = "committed"
    RESTARTED_WITH_FRESH_SNAPSHOT = "restarted_with_fresh_snapshot"
    CANCELLED_TO_MANUAL_ENTRY = "cancelled_to_manual_entry"


class ItemSnapshot(BaseModel):
    """
    Full ordered list plus its fingerprint.

    Returned by GET /wishlists/{id}/items/snapshot. The client runs the
    comparisons against `items` and sends `fingerprint` back on commit.
    """

    wishlist_id: UUID
    items: list[Item] = Field(default_factory=list)
    fingerprint: str = Field(..., example="empty")


class SmartAddProgress(BaseModel):
    """'Question 3 of ~7' style progress for the UI."""

    question_number: int = Field(..., ge=1)
    max_questions: int = Field(..., ge=0)


class SmartAddSession(BaseModel):
    """
    One smart add run over one snapshot.

    `machine` indexes into `snapshot` (display order, most important
    first). `fingerprint` is the snapshot's fingerprint at start time and
    is checked again on finalize.
    """

    model_config = ConfigDict(frozen=True)

    wishlist_id: UUID
    draft: ItemCreate
    snapshot: tuple[Item, ...] = ()
    fingerprint: str
    machine: BinaryInsertState
    phase: WizardPhase = WizardPhase.COMPARING

    @classmethod
    def begin(
        cls,
        wishlist_id: UUID,
        draft: ItemCreate,
        snapshot: ItemSnapshot,
        phase: WizardPhase = WizardPhase.COMPARING,
    ) -> "SmartAddSession":
        """Start comparing against a snapshot. An empty list goes straight to finalizing."""
        machine = init_binary_insert(len(snapshot.items))
        if is_done(machine):
            phase = WizardPhase.FINALIZING
        return cls(
            wishlist_id=wishlist_id,
            draft=draft,
            snapshot=tuple(snapshot.items),
            fingerprint=snapshot.fingerprint,
            machine=machine,
            phase=phase,
        )

    # -------------------------------------------------------------------------
    # Read-only helpers
    # -------------------------------------------------------------------------

    @property
    def is_comparing(self) -> bool:
        return self.phase in (WizardPhase.COMPARING, WizardPhase.RESTARTED_WITH_FRESH_SNAPSHOT)

    @property
    def current_item(self) -> Item | None:
        """The existing item to compare the draft against, if any."""
        mid = current_mid(self.machine)
        return None if mid is None else self.snapshot[mid]

    @property
    def position(self) -> int:
        """How many snapshot items stay above the new one (once done)."""
        return result_position(self.machine)

    def progress(self) -> SmartAddProgress:
        return SmartAddProgress(
            question_number=len(self.machine.history) + 1,
            max_questions=max_questions(self.machine.total),
        )

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def choose(self, choice: BinaryChoice | str) -> "SmartAddSession":
        """
        Record one answer.

        Moves to FINALIZING once the position is known.

        Raises:
            InvalidTransitionError: If the session is not comparing
        """
        if not self.is_comparing:
            raise InvalidTransitionError(f"Cannot answer a comparison in phase {self.phase.value}")

        machine = apply_choice(self.machine, choice)
        phase = WizardPhase.FINALIZING if is_done(machine) else WizardPhase.COMPARING
        return self.model_copy(update={"machine": machine, "phase": phase})

    def go_back(self) -> "SmartAddSession":
        """Undo the last answer. Works while comparing or right before finalize."""
        if self.phase not in (
            WizardPhase.COMPARING,
            WizardPhase.RESTARTED_WITH_FRESH_SNAPSHOT,
            WizardPhase.FINALIZING,
        ):
            raise InvalidTransitionError(f"Cannot go back in phase {self.phase.value}")

        machine = undo_choice(self.machine)
        phase = WizardPhase.FINALIZING if is_done(machine) else WizardPhase.COMPARING
        return self.model_copy(update={"machine": machine, "phase": phase})

    def cancel(self) -> "SmartAddSession":
        """Abandon ranking. Nothing has been written, so nothing is undone."""
        if self.phase is WizardPhase.COMMITTED:
            raise InvalidTransitionError("Cannot cancel a committed smart add")
        return self.model_copy(update={"phase": WizardPhase.CANCELLED_TO_MANUAL_ENTRY})


class FinalizeStatus(str, Enum):
    """
    Outcome of SmartAddService.finalize().

    - committed: item stored with the computed key
    - conflict: the list changed since the snapshot; nothing stored
    - precision_exhausted: neighbours too close; rebalance, then restart
    """
    COMMITTED = "committed"
    CONFLICT = "conflict"
    PRECISION_EXHAUSTED = "precision_exhausted"


class ConflictResolution(str, Enum):
    """The two choices offered to the user after a conflict."""
    RESTART = "restart"
    MANUAL_ENTRY = "manual_entry"


class FinalizeResult(BaseModel):
    """Tagged result of a finalize attempt. Never raised, always returned."""

    status: FinalizeStatus
    item: Item | None = None
    fresh_snapshot: ItemSnapshot | None = None
    rebalance_scheduled: bool = False


class SmartAddCommitRequest(BaseModel):
    """
    Body of POST /wishlists/{id}/items/smart-add.

    Example:
        {
            "item": {"name": "Kindle"},
            "position": 2,
            "fingerprint": "3f1c..."
        }
    """

    item: ItemCreate
    position: int = Field(..., ge=0, description="Result of the binary insertion")
    fingerprint: str = Field(..., min_length=1, description="Fingerprint of the snapshot searched")
