"""
Configuration Management for the Ledger Engine

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here: the ledger store connection, the
engine's retry and validation limits, the Gemini extraction client and the
upload limits for receipt images.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Ledger store (SQLAlchemy) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_DB_",
        extra="ignore"
    )

    url: str = Field(
        default="sqlite:///ledger.db",
        description="SQLAlchemy database URL"
    )
    echo: bool = Field(
        default=False,
        description="Log every SQL statement"
    )
    isolation_level: Optional[str] = Field(
        default="REPEATABLE READ",
        description="Transaction isolation level (ignored for SQLite)"
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Connections kept in the pool (ignored for SQLite)"
    )
    busy_timeout_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="How long SQLite waits on a locked database before failing"
    )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class EngineSettings(BaseSettings):
    """Transaction engine behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    # Commit conflict retry
    max_commit_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per unit of work before a Conflict is surfaced"
    )
    retry_wait_min_seconds: float = Field(
        default=0.05,
        ge=0.0,
        description="Initial backoff between conflict retries"
    )
    retry_wait_max_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Maximum backoff between conflict retries"
    )

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=1_000_000_000.0,
        gt=0,
        description="Largest amount accepted for a single entry"
    )
    future_date_tolerance_days: int = Field(
        default=366,
        ge=0,
        description="Entries dated further ahead than this get a warning"
    )

    # Downstream invalidation
    dashboard_path: str = Field(
        default="/dashboard",
        description="View invalidated after every committed write"
    )
    account_path_template: str = Field(
        default="/account/{account_id}",
        description="Per-account view invalidated after a committed write"
    )

    @model_validator(mode="after")
    def validate_backoff(self) -> "EngineSettings":
        if self.retry_wait_max_seconds < self.retry_wait_min_seconds:
            raise ValueError("retry_wait_max_seconds cannot be below retry_wait_min_seconds")
        return self


class GeminiSettings(BaseSettings):
    """Gemini receipt extraction configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Receipt upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum receipt image size in MB"
    )
    supported_image_types: str = Field(
        default="image/jpeg,image/png,image/webp,image/heic",
        description="Comma-separated list of accepted receipt mime types"
    )

    @field_validator("supported_image_types")
    @classmethod
    def validate_image_types(cls, v: str) -> str:
        if not any(part.strip() for part in v.split(",")):
            raise ValueError("At least one image type must be supported")
        return v

    @property
    def supported_types_list(self) -> list[str]:
        """Get supported mime types as a list."""
        return [t.strip().lower() for t in self.supported_image_types.split(",") if t.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Sub-settings are loaded lazily to allow partial configuration: the
    ledger works without a Gemini key as long as nobody scans a receipt.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with a `<name>_error`
    entry for each section that failed. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("database", "engine", "gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
