# =============================================================================
# core/models/item.py - Wishlist Item Schemas
# =============================================================================
# These models define the API contract for ordered wishlist items:
# - ItemCreate: Input for adding an item (optionally with an explicit key)
# - Item: A stored item, including its ordering key and timestamps
# - ItemPage: One keyset-paginated page of items
# - MoveItemRequest / MoveResult: Manual reorder between two neighbours
# - RebalanceResult: Outcome of renumbering a whole list
#
# The ordering key is called "priority". It is an exact Decimal and always
# travels over JSON as a fixed-point string ("1536.000000000000000000"),
# never as a float.
# =============================================================================

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any
from urllib.parse import urlsplit
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer, field_validator, model_validator

from lib.pagination import SortPosition, sort_position
from lib.priority_math import format_priority, parse_priority

MAX_NAME_LENGTH = 240
MAX_NOTES_LENGTH = 2000


# Decimal key that accepts numbers or strings and serializes as fixed-point text
Priority = Annotated[
    Decimal,
    BeforeValidator(parse_priority),
    PlainSerializer(format_priority, return_type=str, when_used="json"),
]


def normalize_url(raw_url: str | None) -> str | None:
    """
    Normalize a user supplied link.

    Blank -> None. Input without a scheme gets "https://". Only http and
    https links with a host are accepted.

    Raises:
        ValueError: If the link can't be normalized
    """
    if raw_url is None:
        return None

    trimmed = raw_url.strip()
    if not trimmed:
        return None

    candidate = trimmed if "://" in trimmed else f"https://{trimmed}"
    parts = urlsplit(candidate)
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc or " " in parts.netloc:
        raise ValueError(f"Invalid URL: {raw_url}")

    return candidate


class ItemFields(BaseModel):
    """
    Descriptive fields shared by create payloads and stored items.

    Normalization follows the wishlist backend: trimmed name, https-by-default
    URL, upper-case currency, blank notes dropped.
    """

    name: str = Field(
        ...,
        description="What the user wants (e.g. 'Noise cancelling headphones')"
    )

    url: str | None = Field(
        default=None,
        description="Link to the product page"
    )

    price_amount: Decimal | None = Field(
        default=None,
        ge=0,
        description="Price in the given currency (no conversion is done here)"
    )

    price_currency: str | None = Field(
        default=None,
        description="ISO 4217 code, required together with price_amount"
    )

    notes: str | None = Field(
        default=None,
        description="Free-form notes"
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Trim and require 1..240 characters."""
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Name must be at most {MAX_NAME_LENGTH} characters")
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        return normalize_url(v)

    @field_validator("price_currency")
    @classmethod
    def validate_currency(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        code = v.strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid currency code: {v}")
        return code

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) > MAX_NOTES_LENGTH:
            raise ValueError(f"Notes must be at most {MAX_NOTES_LENGTH} characters")
        return v or None

    @model_validator(mode="after")
    def validate_price_pair(self) -> "ItemFields":
        """Amount and currency come together or not at all."""
        if (self.price_amount is None) != (self.price_currency is None):
            raise ValueError("price_amount and price_currency must be given together")
        return self


class ItemCreate(ItemFields):
    """
    Schema for adding an item to a wishlist.

    `priority` is optional. When it is missing the item goes to the bottom
    of the list. Smart add fills it in from the comparison result.

    Example:
        {
            "name": "Espresso machine",
            "url": "example.com/espresso",
            "price_amount": "349.00",
            "price_currency": "eur",
            "priority": "1536.5"
        }
    """

    priority: Priority | None = Field(
        default=None,
        description="Explicit ordering key; omit to append at the bottom"
    )


class Item(ItemFields):
    """
    A stored wishlist item.

    Returned by:
    - GET /wishlists/{id}/items (paginated)
    - POST /wishlists/{id}/items
    - PATCH /wishlists/{id}/items/{item_id}/position
    """

    id: int = Field(..., description="Store-assigned identifier, never reused")

    wishlist_id: UUID = Field(..., description="Owning wishlist")

    priority: Priority = Field(..., description="Ordering key, higher = more important")

    created_at: datetime = Field(..., description="Creation time (UTC)")

    updated_at: datetime = Field(..., description="Last modification time (UTC)")

    is_deleted: bool = Field(default=False, description="Soft-delete tombstone")

    deleted_at: datetime | None = Field(default=None)

    @field_validator("created_at", "updated_at", "deleted_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "Item":
        """Build an Item from a wish_items row (Supabase or in-memory)."""
        return cls.model_validate(row)

    @property
    def position(self) -> SortPosition:
        """Sort tuple used for ordering and cursors."""
        return sort_position(self)


class ItemPage(BaseModel):
    """
    One page of a wishlist in display order.

    Example:
        {
            "items": [...],
            "next_cursor": "MTAyNC4wMDAw..."
        }
    """

    items: list[Item] = Field(default_factory=list)

    next_cursor: str | None = Field(
        default=None,
        description="Pass back as ?cursor= to get the next page; null on the last page"
    )


class MoveItemRequest(BaseModel):
    """
    Move an item between two neighbours.

    `above_item_id` is the item that should end up directly above, and
    `below_item_id` the one directly below. Leave one empty to move to the
    top or bottom of the list.
    """

    above_item_id: int | None = Field(default=None)
    below_item_id: int | None = Field(default=None)

    @model_validator(mode="after")
    def validate_neighbors(self) -> "MoveItemRequest":
        if self.above_item_id is None and self.below_item_id is None:
            raise ValueError("At least one of above_item_id / below_item_id is required")
        if self.above_item_id is not None and self.above_item_id == self.below_item_id:
            raise ValueError("above_item_id and below_item_id must differ")
        return self


class MoveStatus(str, Enum):
    """
    Outcome of a manual move.

    - moved: the item got a new key
    - precision_exhausted: the neighbours are too close; rebalance first
    """
    MOVED = "moved"
    PRECISION_EXHAUSTED = "precision_exhausted"


class MoveResult(BaseModel):
    """Typed outcome of ItemService.move_item()."""

    status: MoveStatus
    item: Item | None = None
    rebalance_scheduled: bool = False


class RebalanceResult(BaseModel):
    """Outcome of renumbering a list."""

    rebalanced_count: int = Field(..., ge=0, example=3)
