# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the ordering business logic:
# - models/: Pydantic schemas for items and smart add sessions
# - services/: Item store backends, item operations, smart add
#
# Code in this package should NOT import from FastAPI or Celery.
# Scheduling of background rebalances is injected as a plain callable.
# =============================================================================
