# =============================================================================
# workers/celery_app.py - Celery Application for Background Rebalances
# =============================================================================
# The worker only runs list maintenance: rebalance_wishlist_items is queued
# by the API when neighbouring keys get too close and runs on the
# "maintenance" queue.
#
# Usage:
#   celery -A workers.celery_app worker -Q default,maintenance --loglevel=info
# =============================================================================

import logging
from typing import Any

from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun
from dotenv import load_dotenv

load_dotenv()

from app.config import settings

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _broker_host(url: str) -> str:
    """Broker URL without credentials, for logs."""
    return url.split("@")[-1]


def create_celery_app() -> Celery:
    """Celery app for the wishlist ordering worker, configured from CeleryConfig."""
    app = Celery(
        "wishlist_ordering_worker",
        broker=settings.REDIS_URL,
        backend=settings.REDIS_URL,
        include=["workers.tasks"],
    )
    app.config_from_object("workers.config:CeleryConfig")

    logger.info(f"Rebalance worker using broker {_broker_host(settings.REDIS_URL)}")
    return app


celery_app = create_celery_app()


# =============================================================================
# Celery Signals (Lifecycle Hooks)
# =============================================================================

def wishlist_of(args: Any = None, kwargs: Any = None) -> str | None:
    """The wishlist a task call targets (first positional or wishlist_id kwarg)."""
    if kwargs and kwargs.get("wishlist_id") is not None:
        return str(kwargs["wishlist_id"])
    if args:
        return str(args[0])
    return None


@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **extra):
    """Log which wishlist a task is about to work on."""
    logger.info(f"Task started: {task.name} [{task_id}] wishlist={wishlist_of(args, kwargs)}")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, retval=None, state=None, **extra):
    """Log the outcome; rebalances report how many items were renumbered."""
    if isinstance(retval, dict) and "rebalanced_count" in retval:
        logger.info(
            f"Rebalanced {retval['rebalanced_count']} items in wishlist "
            f"{retval.get('wishlist_id')} [{task_id}] - State: {state}"
        )
        return

    logger.info(f"Task completed: {task.name} [{task_id}] - State: {state}")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, args=None, kwargs=None, **extra):
    """Log a failed task. A failed rebalance leaves the previous keys in place."""
    logger.error(
        f"Task failed: {sender.name} [{task_id}] wishlist={wishlist_of(args, kwargs)} "
        f"- Error: {exception}"
    )


if __name__ == "__main__":
    celery_app.start()
