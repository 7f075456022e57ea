# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Wishlist Ordering API:
# - test_priority_math.py, test_pagination.py, test_binary_insert.py,
#   test_staleness.py: pure ordering primitives
# - test_models.py: Pydantic model validation
# - test_item_service.py, test_smart_add.py: services on the in-memory store
# - test_supabase_store.py: Supabase wrapper with a mocked client
# - test_items_router.py: HTTP endpoints via TestClient
# - test_workers.py, test_config.py: Celery wiring and settings
#
# Run tests with: pytest
# =============================================================================
