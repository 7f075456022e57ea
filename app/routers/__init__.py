# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - items.py: Ordered wishlist items, reordering, rebalance and smart add
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import items

__all__ = [
    "health",
    "items",
]
