# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# background maintenance of wishlist ordering.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (rebalance)
# - config.py: Worker-specific settings
#
# Usage:
#   # Start worker
#   celery -A workers.celery_app worker -Q default,maintenance --loglevel=info
#
#   # Or use the script
#   python scripts/start_worker.py
#
#   # Submit task (from API)
#   from workers.tasks import rebalance_wishlist_items
#   result = rebalance_wishlist_items.delay(str(wishlist_id))
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
