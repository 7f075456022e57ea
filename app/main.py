# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Wishlist Ordering API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.exceptions import (
    WishlistOrderingException,
    validation_exception_handler,
    wishlist_ordering_exception_handler,
)
from app.routers import health, items

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup and shutdown:
    - Startup: Log configuration
    - Shutdown: Log shutdown
    """
    # Startup
    logger.info(f"Starting Wishlist Ordering API in {settings.ENVIRONMENT} mode")
    logger.info(f"Item store backend: {settings.ITEM_STORE_BACKEND}")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    yield

    # Shutdown
    logger.info("Shutting down Wishlist Ordering API")


# Create FastAPI application
app = FastAPI(
    title="Wishlist Ordering API",
    description="""
## Ordered Wishlists

Every item carries an exact decimal key called `priority`. Higher keys come
first; ties fall back to the newest item.

### How It Works

1. **Add items** - at the bottom, or with an explicit key
2. **Reorder** - drop an item between two neighbours; only its key changes
3. **Smart add** - answer "which matters more?" a few times instead of
   picking a number
4. **Rebalance** - when neighbouring keys get too close, the list is
   renumbered in the background without changing its order

### Quick Start

```bash
# 1. Add an item
curl -X POST http://localhost:8000/api/v1/wishlists/{id}/items \\
  -H "Content-Type: application/json" \\
  -d '{"name": "Espresso machine"}'

# 2. Read the list
curl http://localhost:8000/api/v1/wishlists/{id}/items?limit=20

# 3. Move item 7 between items 3 and 5
curl -X PATCH http://localhost:8000/api/v1/wishlists/{id}/items/7/position \\
  -H "Content-Type: application/json" \\
  -d '{"above_item_id": 3, "below_item_id": 5}'
```
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Items",
            "description": "Ordered wishlist items, reordering and smart add",
        },
        {
            "name": "Health",
            "description": "API health and readiness checks",
        },
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(WishlistOrderingException)
async def handle_wishlist_ordering_exception(request: Request, exc: WishlistOrderingException):
    """Handle custom wishlist ordering exceptions."""
    return await wishlist_ordering_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def handle_validation_exception(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    return await validation_exception_handler(request, exc)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

# Health check endpoints
app.include_router(
    health.router,
    prefix="/api/v1",
    tags=["Health"]
)

# Wishlist item endpoints
app.include_router(
    items.router,
    prefix="/api/v1/wishlists",
    tags=["Items"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Wishlist Ordering API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
