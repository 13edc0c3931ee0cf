# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# Optional integrations (Resend, reCAPTCHA, admin invites, cron) are disabled
# when their key is left empty; the endpoints that need them answer 503.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Legacy HS256 JWT secret used to verify access tokens"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (for Celery)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker"
    )

    # -------------------------------------------------------------------------
    # Email (Resend)
    # -------------------------------------------------------------------------

    RESEND_API_KEY: str = Field(
        default="",
        description="Resend API key; emails are skipped when empty"
    )

    FROM_EMAIL: str = Field(
        default="noreply@maximally.in",
        description="Sender address for transactional email"
    )

    NEWSLETTER_SENDER_NAME: str = Field(
        default="Maximally Newsletter",
        description="Display name used for newsletter sends"
    )

    PLATFORM_URL: str = Field(
        default="http://localhost:5173",
        description="Public URL of the web frontend (used in email links)"
    )

    # -------------------------------------------------------------------------
    # Signup OTP
    # -------------------------------------------------------------------------

    SKIP_EMAIL_OTP: bool = Field(
        default=False,
        description="Development only: use a fixed code and return it in the response"
    )

    OTP_EXPIRY_MINUTES: int = Field(
        default=10,
        ge=1,
        le=60,
        description="Minutes before a signup code expires"
    )

    OTP_MAX_ATTEMPTS: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Wrong guesses allowed before a signup code is discarded"
    )

    # -------------------------------------------------------------------------
    # Judging
    # -------------------------------------------------------------------------

    JUDGE_TOKEN_EXPIRY_DAYS: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Lifetime of judge scoring links"
    )

    # -------------------------------------------------------------------------
    # Third-party Secrets
    # -------------------------------------------------------------------------

    RECAPTCHA_SECRET_KEY: str = Field(
        default="",
        description="Google reCAPTCHA v3 secret"
    )

    ADMIN_INVITE_TOKEN: str = Field(
        default="",
        description="Shared secret required by the admin invite endpoint"
    )

    CRON_SECRET: str = Field(
        default="",
        description="Bearer secret for scheduled job endpoints (open when empty)"
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

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    SECRET_KEY: str = Field(
        default="dev-secret-key-change-in-production",
        min_length=16,
        description="Secret key for hashing OTPs and signing unsubscribe links"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:5173",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Subscriber Import
    # -------------------------------------------------------------------------

    MAX_IMPORT_SIZE_MB: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum subscriber CSV upload size in MB"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:5173, https://maximally.in" -> ["http://localhost:5173", "https://maximally.in"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def max_import_size_bytes(self) -> int:
        return self.MAX_IMPORT_SIZE_MB * 1024 * 1024

    @property
    def email_enabled(self) -> bool:
        return bool(self.RESEND_API_KEY)

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

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
