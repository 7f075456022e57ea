# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Errors should tell HOW to fix, not just WHAT failed.
#
# Precision exhaustion and stale snapshots are returned by the services as
# typed results. The routers turn those results into the 409 errors below.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class WishlistOrderingException(Exception):
    """
    Base exception for the wishlist ordering API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "WISHLIST_ORDERING_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Item Exceptions
# =============================================================================

class ItemNotFoundError(WishlistOrderingException):
    """Raised when an item doesn't exist, was deleted, or is in another wishlist."""

    def __init__(self, wishlist_id: str, item_id: int):
        super().__init__(
            message=f"Item not found: {item_id}",
            code="ITEM_NOT_FOUND",
            status_code=404,
            suggestion="Reload the list; the item may have been deleted",
            details={"wishlist_id": wishlist_id, "item_id": item_id}
        )


class InvalidNeighborsError(WishlistOrderingException):
    """Raised when a move names neighbours that can't surround the item."""

    def __init__(self, reason: str, above_item_id: int | None, below_item_id: int | None):
        super().__init__(
            message=f"Invalid move target: {reason}",
            code="INVALID_NEIGHBORS",
            status_code=400,
            suggestion="Pass the ids of the items directly above and below the drop position",
            details={"above_item_id": above_item_id, "below_item_id": below_item_id}
        )


# =============================================================================
# Ordering Conflicts
# =============================================================================

class PrecisionExhaustedError(WishlistOrderingException):
    """The neighbouring keys are too close to place anything between them."""

    def __init__(self, wishlist_id: str, rebalance_scheduled: bool):
        super().__init__(
            message="No room left between the neighbouring items",
            code="PRECISION_EXHAUSTED",
            status_code=409,
            suggestion=(
                "A rebalance has been queued; retry shortly"
                if rebalance_scheduled
                else f"Call POST /api/v1/wishlists/{wishlist_id}/items/rebalance, then retry"
            ),
            details={"wishlist_id": wishlist_id, "rebalance_scheduled": rebalance_scheduled}
        )


class StaleSnapshotError(WishlistOrderingException):
    """The list changed between the snapshot and the commit."""

    def __init__(self, wishlist_id: str, fresh_snapshot: dict[str, Any]):
        super().__init__(
            message="The list has changed since the comparisons started",
            code="STALE_SNAPSHOT",
            status_code=409,
            suggestion="Restart the comparisons with the fresh snapshot, or add the item without ranking",
            details={"wishlist_id": wishlist_id, "fresh_snapshot": fresh_snapshot}
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def wishlist_ordering_exception_handler(
    request: Request,
    exc: WishlistOrderingException
) -> JSONResponse:
    """
    Convert WishlistOrderingException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Converts validation errors to user-friendly messages.
    """
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "code": "VALIDATION_ERROR",
            "errors": str(exc)
        }
    )
