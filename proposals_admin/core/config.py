"""Application configuration using Pydantic Settings.

This project loads configuration from environment variables.

Optionally, you may point `ENV_FILE` at a local env file (for development).
"""

import os
import re
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppEnvironment(str, Enum):
    """Application environment values."""

    LOCAL = "local"
    TEST = "test"
    PROD = "prod"


class Settings(BaseSettings):
    """
    Application settings with type validation.

    Configuration is loaded from environment variables, with support
    for .env files in development.
    """

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None, env_prefix="", extra="ignore"
    )

    # Application
    app_env: AppEnvironment = AppEnvironment.LOCAL
    app_name: str = "proposals-admin-api"
    app_log_level: str = "INFO"

    # Observability
    observability_enabled: bool = True
    observability_structured_logs: bool = True
    observability_request_id_header: str = "X-Request-ID"

    # Database
    # postgresql+asyncpg://... in deployed environments, sqlite+aiosqlite for local runs
    database_url: str = "sqlite+aiosqlite:///./.local/proposals.db"

    # Auth0 Configuration
    auth0_domain: str = "local.auth0.com"
    auth0_audience: str = "https://proposals-admin-api"
    auth0_algorithms: str = "RS256"
    jwks_cache_ttl_seconds: int = 3600

    # Local Development: Skip JWT validation
    # SECURITY: ONLY allowed in LOCAL environment. Will raise error in TEST/PROD.
    skip_jwt_validation: bool = Field(
        default=False, validation_alias="SECURITY_SKIP_JWT_VALIDATION"
    )

    @field_validator("skip_jwt_validation", mode="before")
    @classmethod
    def parse_skip_jwt_validation(cls, v: bool | str) -> bool:
        """Parse skip_jwt_validation from string or bool."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes", "on")
        return bool(v)

    # Metrics token for protecting /metrics endpoint
    metrics_token: str | None = None

    # Health check token for protecting /health and /readyz endpoints (optional)
    health_token: str | None = None

    # CORS Configuration
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def auth0_algorithms_list(self) -> list[str]:
        """Parse Auth0 algorithms string into a list."""
        return [algo.strip() for algo in self.auth0_algorithms.split(",")]

    # Request size limit (attachments travel base64-encoded in JSON bodies)
    max_request_size_mb: int = 15

    # Attachment storage
    attachments_dir: str = ".local/attachments"
    attachment_max_size_mb: int = 10
    attachment_allowed_content_types: str = (
        "image/jpeg,image/png,image/gif,image/webp,application/pdf,"
        "application/vnd.oasis.opendocument.text,text/plain,text/csv"
    )

    @property
    def attachment_allowed_content_types_list(self) -> list[str]:
        """Parse allowed attachment content types into a list."""
        return [
            ctype.strip()
            for ctype in self.attachment_allowed_content_types.split(",")
            if ctype.strip()
        ]

    @property
    def attachment_max_size_bytes(self) -> int:
        return self.attachment_max_size_mb * 1024 * 1024

    # Geocoding (Nominatim-compatible search endpoint)
    geocoding_url: str = "https://nominatim.openstreetmap.org/search"
    geocoding_timeout_seconds: float = 5.0
    geocoding_user_agent: str = "proposals-admin-api"

    # Index pagination
    default_per_page: int = 15
    max_per_page: int = 100

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | AppEnvironment) -> AppEnvironment:
        """Validate and parse app_env to AppEnvironment enum."""
        if isinstance(v, AppEnvironment):
            return v
        try:
            return AppEnvironment(v.lower())
        except ValueError:
            raise ValueError(
                f"app_env must be one of {[e.value for e in AppEnvironment]}, got '{v}'"
            )

    @field_validator("app_log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not re.match(r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$", level):
            raise ValueError(f"app_log_level must be a standard logging level, got '{v}'")
        return level

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """
        Validate production-specific settings.

        These checks prevent insecure configurations from being deployed to production.
        """
        # SECURITY: JWT validation bypass is ONLY allowed in LOCAL environment
        if self.skip_jwt_validation and self.app_env != AppEnvironment.LOCAL:
            raise ValueError(
                "SECURITY_SKIP_JWT_VALIDATION can only be set in local environment. "
                f"Current environment: {self.app_env.value}"
            )

        if self.app_env == AppEnvironment.PROD:
            if self.database_url.startswith("sqlite"):
                raise ValueError("DATABASE_URL must point to PostgreSQL in production")

            if self.auth0_domain.startswith("http://"):
                raise ValueError("AUTH0_DOMAIN must use HTTPS in production")

            # CORS must not allow localhost in production
            for origin in self.cors_origins_list:
                if "localhost" in origin or "127.0.0.1" in origin:
                    raise ValueError(
                        f"CORS origins must not contain localhost in production: {origin}"
                    )

        return self


settings = Settings()
