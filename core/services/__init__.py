# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .item_store import InMemoryItemStore, ItemStore, SupabaseItemStore, build_item_store
from .item_service import ItemService
from .smart_add_service import SmartAddService

__all__ = [
    "ItemStore",
    "InMemoryItemStore",
    "SupabaseItemStore",
    "build_item_store",
    "ItemService",
    "SmartAddService",
]
