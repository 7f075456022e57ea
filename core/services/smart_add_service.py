# =============================================================================
# core/services/smart_add_service.py - Smart Add Start & Finalize
# =============================================================================
# The two I/O points of a smart add run:
#
# 1. start(): read the full list, fingerprint it, open a SmartAddSession
# 2. finalize(): re-read the list, compare fingerprints, then either
#    - refuse (CONFLICT) and hand back the fresh snapshot, or
#    - compute the key from the snapshot neighbours and insert the item
#
# Between the two, the session is driven purely in memory (see
# core/models/smart_add.py). After a conflict the caller picks one of two
# resolutions; nothing is retried or merged automatically.
# =============================================================================

import logging
from uuid import UUID

from core.models.item import Item, ItemCreate
from core.models.smart_add import (
    ConflictResolution,
    FinalizeResult,
    FinalizeStatus,
    SmartAddSession,
    WizardPhase,
)
from core.services.item_service import ItemService
from lib.binary_insert import InvalidTransitionError
from lib.priority_math import compute_priority_for_position, neighbors_too_dense
from lib.staleness import has_fingerprint_changed

logger = logging.getLogger(__name__)


class SmartAddService:
    """
    Start and finalize smart add sessions on top of ItemService.

    Example:
        service = SmartAddService(item_service)
        session = service.start(wishlist_id, ItemCreate(name="Kindle"))
        while session.phase is not WizardPhase.FINALIZING:
            session = session.choose(ask_user(session.current_item))
        result = service.finalize(session)
    """

    def __init__(self, items: ItemService):
        self.items = items

    def start(self, wishlist_id: UUID, draft: ItemCreate) -> SmartAddSession:
        """Take a snapshot and open a session over it."""
        snapshot = self.items.snapshot(wishlist_id)
        logger.info(
            f"Smart add started for wishlist {wishlist_id} over {len(snapshot.items)} items"
        )
        return SmartAddSession.begin(wishlist_id, draft, snapshot)

    def finalize(self, session: SmartAddSession) -> FinalizeResult:
        """
        Commit the item found by the comparisons, if the list is unchanged.

        Raises:
            InvalidTransitionError: If the session still has open questions
        """
        if session.phase is not WizardPhase.FINALIZING:
            raise InvalidTransitionError(f"Cannot finalize a session in phase {session.phase.value}")

        return self.commit_at_position(
            session.wishlist_id,
            session.draft,
            session.position,
            session.fingerprint,
            list(session.snapshot),
        )

    def commit_at_position(
        self,
        wishlist_id: UUID,
        draft: ItemCreate,
        position: int,
        fingerprint: str,
        snapshot_items: list[Item] | None = None,
    ) -> FinalizeResult:
        """
        Staleness-guarded insert at a snapshot position.

        Re-reads the whole list. If its fingerprint differs from the one the
        comparisons ran against, nothing is written and the fresh snapshot
        is returned with status CONFLICT.

        Args:
            wishlist_id: Wishlist UUID
            draft: The new item (its priority, if any, is ignored)
            position: Number of snapshot items that rank above the new one
            fingerprint: Fingerprint of the snapshot that was searched
            snapshot_items: The searched snapshot; when omitted (HTTP path)
                the re-read list is used, which is identical once the
                fingerprints match

        Returns:
            FinalizeResult tagged COMMITTED, CONFLICT or PRECISION_EXHAUSTED
        """
        fresh = self.items.snapshot(wishlist_id)

        if has_fingerprint_changed(fingerprint, fresh.fingerprint):
            logger.info(f"Smart add for wishlist {wishlist_id} refused: list changed since snapshot")
            return FinalizeResult(status=FinalizeStatus.CONFLICT, fresh_snapshot=fresh)

        items = snapshot_items if snapshot_items is not None else fresh.items
        position = min(max(position, 0), len(items))
        prev_priority = items[position - 1].priority if position > 0 else None
        next_priority = items[position].priority if position < len(items) else None

        if neighbors_too_dense(prev_priority, next_priority, self.items.epsilon):
            logger.warning(f"Smart add for wishlist {wishlist_id} hit exhausted precision at position {position}")
            scheduled = self.items.schedule_rebalance(wishlist_id)
            return FinalizeResult(status=FinalizeStatus.PRECISION_EXHAUSTED, rebalance_scheduled=scheduled)

        priority = compute_priority_for_position(
            [item.priority for item in items],
            position,
            self.items.step,
        )
        item = self.items.create_item(wishlist_id, draft.model_copy(update={"priority": priority}))

        scheduled = False
        if self.items.is_crowded(prev_priority, priority, next_priority):
            scheduled = self.items.schedule_rebalance(wishlist_id)

        return FinalizeResult(status=FinalizeStatus.COMMITTED, item=item, rebalance_scheduled=scheduled)

    def resolve_conflict(
        self,
        session: SmartAddSession,
        result: FinalizeResult,
        resolution: ConflictResolution,
    ) -> SmartAddSession:
        """
        Apply the user's choice after a CONFLICT.

        - RESTART: a new session over the fresh snapshot, same draft
        - MANUAL_ENTRY: the session ends in CANCELLED_TO_MANUAL_ENTRY; the
          caller adds the item without ranking (e.g. create_item with no key)

        Raises:
            InvalidTransitionError: If `result` is not a conflict
        """
        if result.status is not FinalizeStatus.CONFLICT or result.fresh_snapshot is None:
            raise InvalidTransitionError("Only a conflicting finalize can be resolved")

        resolution = ConflictResolution(resolution)
        if resolution is ConflictResolution.MANUAL_ENTRY:
            logger.info(f"Smart add for wishlist {session.wishlist_id} handed off to manual entry")
            return session.cancel()

        logger.info(
            f"Smart add for wishlist {session.wishlist_id} restarted over "
            f"{len(result.fresh_snapshot.items)} items"
        )
        return SmartAddSession.begin(
            session.wishlist_id,
            session.draft,
            result.fresh_snapshot,
            phase=WizardPhase.RESTARTED_WITH_FRESH_SNAPSHOT,
        )

    def mark_committed(self, session: SmartAddSession) -> SmartAddSession:
        """Close a session after a COMMITTED finalize."""
        return session.model_copy(update={"phase": WizardPhase.COMMITTED})
