# =============================================================================
# lib/pagination.py - Keyset Pagination for Ordered Items
# =============================================================================
# Items are ordered by (priority desc, created_at desc, id desc). The tuple
# is unique per item, so it is a strict total order even when priorities or
# timestamps collide.
#
# A cursor is the sort tuple of the last item on the previous page, packed
# into an opaque URL-safe token. The next page holds the items that sort
# strictly after it.
#
# Usage:
#   page, next_cursor = build_page(candidates, decode_cursor(token), limit=20)
# =============================================================================

from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, NamedTuple, Protocol, TypeVar

from lib.priority_math import format_priority, parse_priority

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Orderable(Protocol):
    """Anything carrying the three fields of the sort tuple."""

    id: int
    priority: Decimal
    created_at: datetime


T = TypeVar("T", bound=Orderable)


class SortPosition(NamedTuple):
    """
    Position of an item in the list order.

    Tuple comparison gives the list order directly: a larger SortPosition
    is shown earlier.
    """

    priority: Decimal
    created_at: datetime
    id: int


def sort_position(item: Orderable) -> SortPosition:
    """Extract the sort tuple from an item."""
    return SortPosition(item.priority, ensure_utc(item.created_at), item.id)


def sort_items(items: Iterable[T]) -> list[T]:
    """Return items in display order (most important first)."""
    return sorted(items, key=sort_position, reverse=True)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# Cursor Encoding
# =============================================================================

def _to_epoch_micros(value: datetime) -> int:
    delta = ensure_utc(value) - EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds


def encode_cursor(position: SortPosition) -> str:
    """
    Pack a sort tuple into an opaque cursor token.

    Format before encoding: "<priority>:<created_at µs since epoch>:<id>".
    Padding is stripped; decode_cursor() restores it.
    """
    raw = f"{format_priority(position.priority)}:{_to_epoch_micros(position.created_at)}:{position.id}"
    token = base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")
    return token.rstrip("=")


def decode_cursor(cursor: str | None) -> SortPosition | None:
    """
    Unpack a cursor token.

    Any malformed token decodes to None, which callers treat as "first
    page". This never raises.
    """
    if cursor is None or not cursor.strip():
        return None

    token = cursor.strip()
    try:
        padded = token + "=" * (-len(token) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
        parts = raw.split(":")
        if len(parts) != 3:
            raise ValueError(f"expected 3 parts, got {len(parts)}")

        priority = parse_priority(parts[0])
        created_at = EPOCH + timedelta(microseconds=int(parts[1]))
        item_id = int(parts[2])
    except (ValueError, UnicodeError, binascii.Error, OverflowError) as e:
        logger.debug(f"Ignoring malformed cursor {token[:32]!r}: {e}")
        return None

    return SortPosition(priority, created_at, item_id)


# =============================================================================
# Page Assembly
# =============================================================================

def normalize_limit(limit: int | None, default: int, maximum: int) -> int:
    """
    Resolve the requested page size.

    Missing or non-positive limits use the default; limits above the
    maximum are clamped rather than rejected.
    """
    if limit is None or limit <= 0:
        return default
    return min(limit, maximum)


def build_page(
    candidates: Iterable[T],
    after: SortPosition | None,
    limit: int,
) -> tuple[list[T], str | None]:
    """
    Cut one page out of a candidate set.

    The candidates may be over-fetched, unsorted, or include rows at or
    before the cursor (ties on priority or created_at). Only the full
    three-part comparison decides what belongs on the page.

    Args:
        candidates: Rows returned by the store for this page
        after: Decoded cursor, or None for the first page
        limit: Page size (already normalized)

    Returns:
        (items, next_cursor) where next_cursor is None on the last page
    """
    ordered = sort_items(candidates)
    if after is not None:
        ordered = [item for item in ordered if sort_position(item) < after]

    page = ordered[:limit]
    has_next = len(ordered) > limit

    next_cursor = encode_cursor(sort_position(page[-1])) if has_next and page else None
    return page, next_cursor
