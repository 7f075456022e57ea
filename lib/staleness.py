# =============================================================================
# lib/staleness.py - Snapshot Fingerprints
# =============================================================================
# A fingerprint summarizes the ordering-relevant state of a list: the id,
# priority and updated_at of every live item. Two snapshots of the same list
# have equal fingerprints only if nobody inserted, deleted, moved or edited
# an item in between.
#
# Smart add captures a fingerprint when it takes its snapshot and compares
# it again right before committing.
# =============================================================================

from __future__ import annotations

import hashlib
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Protocol

from lib.pagination import ensure_utc, sort_items
from lib.priority_math import format_priority

EMPTY_FINGERPRINT = "empty"


class Fingerprintable(Protocol):
    id: int
    priority: Decimal
    created_at: datetime
    updated_at: datetime


def compute_items_fingerprint(items: Iterable[Fingerprintable]) -> str:
    """
    Fold (id, priority, updated_at) of every item into one hex digest.

    Items are put into list order first, so the fingerprint does not depend
    on the order the store returned them in.

    Returns:
        "empty" for an empty list, otherwise a SHA-256 hex digest
    """
    ordered = sort_items(items)
    if not ordered:
        return EMPTY_FINGERPRINT

    digest = hashlib.sha256()
    for item in ordered:
        entry = f"{item.id}:{format_priority(item.priority)}:{ensure_utc(item.updated_at).isoformat()}|"
        digest.update(entry.encode("utf-8"))
    return digest.hexdigest()


def has_fingerprint_changed(initial: str, current: str) -> bool:
    return initial != current
