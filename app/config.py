# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.ITEMS_PAGE_SIZE_MAX)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# The Settings class validates all values at startup, catching configuration
# errors early rather than at runtime.
# =============================================================================

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings to:
    - Automatically load from .env file
    - Validate types and constraints
    - Provide sensible defaults for development

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # Only required when ITEM_STORE_BACKEND is "supabase"

    SUPABASE_URL: str | None = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_SERVICE_KEY: str | None = Field(
        default=None,
        description="Supabase service_role key (bypasses RLS)"
    )

    ITEM_STORE_BACKEND: Literal["supabase", "memory"] = Field(
        default="supabase",
        description="Where wishlist items live ('memory' is for development and tests)"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (for Celery)
    # -------------------------------------------------------------------------
    # Default to localhost for development

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker"
    )

    # -------------------------------------------------------------------------
    # Ordering Settings
    # -------------------------------------------------------------------------

    PRIORITY_STEP: Decimal = Field(
        default=Decimal("1024"),
        description="Gap between keys at the list ends and after a rebalance"
    )

    PRIORITY_DENSITY_EPSILON: Decimal = Field(
        default=Decimal("0.000000001"),
        description="Neighbours closer than this must be rebalanced before inserting between them"
    )

    AUTO_REBALANCE_ON_DENSITY: bool = Field(
        default=True,
        description="Queue a background rebalance when keys get too dense"
    )

    # -------------------------------------------------------------------------
    # Pagination Settings
    # -------------------------------------------------------------------------

    ITEMS_PAGE_SIZE_DEFAULT: int = Field(
        default=20,
        ge=1,
        description="Page size when the client doesn't ask for one"
    )

    ITEMS_PAGE_SIZE_MAX: int = Field(
        default=50,
        ge=1,
        description="Larger requested page sizes are clamped to this"
    )

    ITEMS_PAGE_OVERFETCH: int = Field(
        default=5,
        ge=0,
        le=1000,
        description="Extra candidate rows fetched per page to absorb sort-key ties"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        # Load from .env file in project root
        env_file=".env",
        env_file_encoding="utf-8",
        # Don't fail if .env doesn't exist (useful for production where
        # env vars are set directly)
        env_ignore_empty=True,
        # Case-sensitive environment variable names
        case_sensitive=True,
        # The .env file may also carry worker-only variables
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("PRIORITY_STEP", "PRIORITY_DENSITY_EPSILON")
    @classmethod
    def validate_positive_decimal(cls, v: Decimal) -> Decimal:
        """Step and epsilon are divisors/thresholds and must be > 0."""
        if not v.is_finite() or v <= 0:
            raise ValueError("must be a finite number greater than zero")
        return v

    @model_validator(mode="after")
    def validate_page_sizes(self) -> "Settings":
        if self.ITEMS_PAGE_SIZE_DEFAULT > self.ITEMS_PAGE_SIZE_MAX:
            raise ValueError("ITEMS_PAGE_SIZE_DEFAULT must not exceed ITEMS_PAGE_SIZE_MAX")
        return self

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Handles comma-separated values and strips whitespace.
        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
