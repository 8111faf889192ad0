"""Application settings loaded from environment variables.

Environment Configuration:
    COFISH_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: Database connection string (required)
    COFISH_INTERNAL_SECRET: Internal API secret (required in staging/prod)

Redis / Celery Configuration:
    REDIS_URL: Redis connection string (preview quota + worker broker)
    CELERY_BROKER_URL: Celery broker URL (defaults to REDIS_URL)
    CELERY_RESULT_BACKEND: Celery result backend URL (defaults to REDIS_URL)

Auth Configuration (required in staging/prod):
    AUTH_JWKS_URL: Full URL to the identity provider's JWKS endpoint
    AUTH_ISSUER: Expected JWT issuer (trailing slash stripped)
    AUTH_AUDIENCES: Comma-separated list of allowed audiences

Vision Oracle:
    OPENAI_API_KEY: Key for the frame scoring / embedding provider
    VISION_MODEL, EMBEDDING_MODEL, VISION_TIMEOUT_S

Points Economy:
    ALIVE_THRESHOLD: Minimum mean aliveScore for a catch to verify
    MIN_CONFIDENCE: Minimum mean oracle confidence for a catch to verify
    DAILY_PREVIEW_LIMIT: TargetZone activity previews per user per day
    LEDGER_MAX_ATTEMPTS: Balance write attempts before surfacing a conflict
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Validation rules:
    - DATABASE_URL is always required
    - AUTH_JWKS_URL, AUTH_ISSUER, AUTH_AUDIENCES are required in staging and prod
    - COFISH_INTERNAL_SECRET is required in staging and prod
    """

    cofish_env: Environment = Field(default=Environment.LOCAL, alias="COFISH_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    cofish_internal_secret: str | None = Field(default=None, alias="COFISH_INTERNAL_SECRET")

    # Redis / Celery settings
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    celery_broker_url: str | None = Field(default=None, alias="CELERY_BROKER_URL")
    celery_result_backend: str | None = Field(default=None, alias="CELERY_RESULT_BACKEND")

    # Identity provider (Cognito user pool or any OIDC issuer with a JWKS endpoint)
    auth_jwks_url: str | None = Field(default=None, alias="AUTH_JWKS_URL")
    auth_issuer: str | None = Field(default=None, alias="AUTH_ISSUER")
    auth_audiences: str | None = Field(default=None, alias="AUTH_AUDIENCES")

    # Vision oracle
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    vision_model: str = Field(default="gpt-4o-mini", alias="VISION_MODEL")
    embedding_model: str = Field(default="text-embedding-3-small", alias="EMBEDDING_MODEL")
    vision_timeout_s: int = Field(default=60, alias="VISION_TIMEOUT_S")

    # Verification thresholds
    alive_threshold: float = Field(default=0.7, ge=0.0, le=1.0, alias="ALIVE_THRESHOLD")
    min_confidence: float = Field(default=0.6, ge=0.0, le=1.0, alias="MIN_CONFIDENCE")

    # Market / ledger
    daily_preview_limit: int = Field(default=3, ge=0, alias="DAILY_PREVIEW_LIMIT")
    ledger_max_attempts: int = Field(default=3, ge=1, alias="LEDGER_MAX_ATTEMPTS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure deployed environments carry auth and internal secret settings."""
        if self.cofish_env in (Environment.STAGING, Environment.PROD):
            missing_auth = []
            if not self.auth_jwks_url:
                missing_auth.append("AUTH_JWKS_URL")
            if not self.auth_issuer:
                missing_auth.append("AUTH_ISSUER")
            if not self.auth_audiences:
                missing_auth.append("AUTH_AUDIENCES")

            if missing_auth:
                raise ValueError(
                    f"Missing required auth settings: {', '.join(missing_auth)} "
                    f"for COFISH_ENV={self.cofish_env.value}"
                )

            if not self.cofish_internal_secret:
                raise ValueError(
                    f"COFISH_INTERNAL_SECRET is required for COFISH_ENV={self.cofish_env.value}"
                )

        return self

    @property
    def requires_internal_header(self) -> bool:
        """Whether requests must include the internal secret header."""
        return self.cofish_env in (Environment.STAGING, Environment.PROD)

    @property
    def audience_list(self) -> list[str]:
        """Parse comma-separated audiences into a list."""
        if self.auth_audiences:
            return [a.strip() for a in self.auth_audiences.split(",") if a.strip()]
        return []

    @property
    def normalized_issuer(self) -> str | None:
        """Return issuer with trailing slash stripped."""
        if self.auth_issuer:
            return self.auth_issuer.rstrip("/")
        return None

    @property
    def effective_celery_broker_url(self) -> str | None:
        """Return Celery broker URL, falling back to REDIS_URL if not set."""
        return self.celery_broker_url or self.redis_url

    @property
    def effective_celery_result_backend(self) -> str | None:
        """Return Celery result backend URL, falling back to REDIS_URL if not set."""
        return self.celery_result_backend or self.redis_url


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
