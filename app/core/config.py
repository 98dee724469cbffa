from __future__ import annotations

from pydantic import Field, PostgresDsn, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_INGEST_SECRET_LENGTH = 32


class MissingRequiredSettingsError(Exception):
    """Raised when required settings are missing."""

    def __init__(self, missing_fields: list[str]) -> None:
        """Initialize with list of missing field names."""
        self.missing_fields = missing_fields
        super().__init__(f"Missing required environment variables: {', '.join(missing_fields)}")


class InvalidSettingsError(Exception):
    """Raised when settings are invalid."""

    def __init__(self, invalid_fields: list[tuple[str, str]]) -> None:
        """Initialize with list of invalid field names and messages."""
        self.invalid_fields = invalid_fields
        summary = ", ".join(f"{field}: {message}" for field, message in invalid_fields)
        super().__init__(f"Invalid environment variables: {summary}")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Required environment variables
    postgres_user: str = Field(..., description="Postgres user (required)")
    postgres_password: str = Field(..., description="Postgres password (required)")
    postgres_host: str = Field(..., description="Postgres host (required)")
    postgres_port: int = Field(..., description="Postgres port (required)")
    postgres_db: str = Field(..., description="Postgres database name (required)")
    redis_host: str = Field(..., description="Redis host (required)")
    redis_port: int = Field(..., description="Redis port (required)")
    redis_db: int = Field(..., description="Redis database number (required)")
    ingest_api_key: str = Field(..., description="Static API key for ingest callers (required)")
    ingest_webhook_secret: str = Field(
        ..., description="Shared secret for HMAC request signatures (required)"
    )

    # Database/Redis urls built from components
    database_url: PostgresDsn | str | None = Field(
        default=None,
        description="Database connection URL",
    )
    redis_url: str | None = Field(
        default=None,
        description="Redis URL used for cache invalidation signals",
    )
    rate_limit_storage_url: str | None = Field(
        default=None,
        description="Rate limit storage URL",
    )

    @model_validator(mode="after")
    def build_derived_urls(self) -> Settings:
        """Build URLs from components when missing."""
        if self.database_url is None:
            self.database_url = PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.postgres_user,
                password=self.postgres_password,
                host=self.postgres_host,
                port=self.postgres_port,
                path=self.postgres_db,
            )
        if self.redis_url is None:
            self.redis_url = f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"
        if self.rate_limit_storage_url is None:
            self.rate_limit_storage_url = self.redis_url
        return self

    # Optional environment variables (defaults provided)
    app_name: str = "content-ingest-api"
    environment: str = "local"
    log_level: str = "INFO"

    # Ingest pipeline tuning
    replay_window_seconds: int = Field(default=300, gt=0)
    sync_timeout_seconds: float = Field(default=10.0, gt=0)
    cache_notify_timeout_seconds: float = Field(default=2.0, gt=0)
    cache_invalidation_channel: str = "cache-invalidation"
    cache_invalidation_enabled: bool = True

    @model_validator(mode="after")
    def validate_ingest_secret_length(self) -> Settings:
        if self.environment == "test":
            return self
        if len(self.ingest_api_key) < MIN_INGEST_SECRET_LENGTH:
            raise ValueError(
                f"Ingest API key must be at least {MIN_INGEST_SECRET_LENGTH} characters."
            )
        if len(self.ingest_webhook_secret) < MIN_INGEST_SECRET_LENGTH:
            raise ValueError(
                f"Ingest webhook secret must be at least {MIN_INGEST_SECRET_LENGTH} characters."
            )
        return self


def validate_settings() -> Settings:
    """Validate settings and raise exception for missing required fields.

    Raises:
        MissingRequiredSettingsError: If required environment variables are missing
        InvalidSettingsError: If environment variables are present but invalid
    """
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as e:
        missing_fields: list[str] = []
        for error in e.errors():
            if error["type"] == "missing":
                field_name = error["loc"][0] if error["loc"] else "unknown"
                missing_fields.append(str(field_name).upper())

        if missing_fields:
            raise MissingRequiredSettingsError(missing_fields) from e

        invalid_fields: list[tuple[str, str]] = []
        for error in e.errors():
            field_path = ".".join(str(part) for part in error.get("loc", []))
            message = error.get("msg", "Invalid value")
            invalid_fields.append((field_path or "unknown", message))

        if invalid_fields:
            raise InvalidSettingsError(invalid_fields) from e

        raise


# Validate settings at import time.
# Exceptions will propagate to the importing module (e.g., app/main.py)
settings = validate_settings()
