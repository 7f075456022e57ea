# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# Provides health check endpoints for monitoring and load balancers.
# =============================================================================

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from app.config import settings
from app.dependencies import ItemStoreDep

router = APIRouter()

# Any valid UUID works; the probe only needs the query to run
PROBE_WISHLIST_ID = UUID(int=0)


# =============================================================================
# Response Models
# =============================================================================

class HealthResponse(BaseModel):
    """Basic health check response."""
    status: str
    timestamp: str
    environment: str
    version: str


class ChecksResponse(BaseModel):
    """Individual service checks."""
    item_store: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""
    status: str
    checks: ChecksResponse
    timestamp: str


class LivenessResponse(BaseModel):
    """Liveness check response."""
    status: str
    timestamp: str


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    Returns basic health status for load balancers and monitoring.
    """
    return HealthResponse(
        status="healthy",
        timestamp=utc_timestamp(),
        environment=settings.ENVIRONMENT,
        version="1.0.0",
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(store: ItemStoreDep):
    """
    Readiness check endpoint.

    Returns whether the service is ready to accept requests.
    Checks that the item store answers a one-row query.
    """
    checks = ChecksResponse(item_store="unknown")

    try:
        store.fetch_page(PROBE_WISHLIST_ID, None, 1)
        checks.item_store = "healthy"
    except Exception as e:
        checks.item_store = f"unhealthy: {str(e)[:50]}"

    return ReadinessResponse(
        status="ready" if checks.item_store == "healthy" else "degraded",
        checks=checks,
        timestamp=utc_timestamp(),
    )


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_check():
    """
    Liveness check endpoint.

    Returns whether the service process is alive.
    Used by Kubernetes/Docker for restart decisions.
    """
    return LivenessResponse(
        status="alive",
        timestamp=utc_timestamp(),
    )
