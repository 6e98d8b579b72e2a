"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # OBJECT STORAGE
    # ===================
    storage_bucket: str = Field(
        default="product-images",
        description="Bucket holding product images"
    )
    storage_image_prefix: str = Field(
        default="bulk-upload",
        description="Key prefix for images extracted from uploaded workbooks"
    )

    # ===================
    # AI ENRICHMENT
    # ===================
    anthropic_api_key: Optional[str] = Field(
        None,
        description="Anthropic API key (enables draft enrichment)"
    )
    enrichment_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Model used to suggest names, units and categories"
    )
    enrichment_max_tokens: int = Field(
        default=4096,
        ge=256,
        le=16384,
        description="Max tokens for an enrichment response"
    )

    # ===================
    # IMPORT SETTINGS
    # ===================
    default_exchange_rate: float = Field(
        default=500,
        gt=0,
        le=10000,
        description="Secondary-currency units per 1 primary-currency unit"
    )
    image_binding_mode: str = Field(
        default="row_number",
        pattern="^(row_number|sequence)$",
        description="How embedded images are bound to draft records"
    )
    session_ttl_minutes: int = Field(
        default=120,
        ge=5,
        le=1440,
        description="Lifetime of an in-memory import session"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def enrichment_configured(self) -> bool:
        """Check if the enrichment model can be called."""
        return bool(self.anthropic_api_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
