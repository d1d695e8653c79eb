"""
Configuration Management for Money's Wisdom

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (quote wall and chat)."""

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
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature (quotes and chat may be a little creative)"
    )
    quote_count: int = Field(
        default=9,
        ge=3,
        le=30,
        description="How many quotes to request for the wisdom wall"
    )
    retry_attempts: int = Field(
        default=2,
        ge=1,
        le=5,
        description="Attempts per Gemini call before falling back"
    )


class StorageSettings(BaseSettings):
    """Local snapshot storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    backend: Literal["file", "memory"] = Field(
        default="file",
        description="Key-value backend: JSON files on disk or process memory"
    )
    data_dir: Path = Field(
        default=Path(".moneys_wisdom"),
        description="Directory holding the persisted snapshot"
    )
    db_key: str = Field(
        default="moneys-wisdom-db-v1",
        description="The single key the whole AppData aggregate lives under"
    )
    seed_path: Optional[Path] = Field(
        default=None,
        description="Optional JSON file replacing the bundled seed dataset"
    )
    max_snapshot_bytes: Optional[int] = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Storage quota per key; writes above it fail"
    )

    @field_validator('seed_path')
    @classmethod
    def validate_seed_path(cls, v: Optional[Path]) -> Optional[Path]:
        """Warn if the seed override doesn't exist (the bundled seed is used instead)."""
        if v is not None and not v.exists():
            import warnings
            warnings.warn(
                f"Seed file not found at {v}. "
                "Falling back to the bundled seed dataset."
            )
        return v


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Data schema
    schema_version: int = Field(
        default=2,
        ge=1,
        description="Current AppData schema version"
    )

    # Ledger thresholds
    allocation_tolerance: float = Field(
        default=0.01,
        gt=0.0,
        le=1.0,
        description="Allowed gap between income and the sum of the three allocations"
    )

    # Journal
    journal_timezone: str = Field(
        default="UTC",
        description="IANA timezone that defines the journal's calendar day"
    )

    # Audit
    audit_history_size: int = Field(
        default=200,
        ge=0,
        description="How many audit events are kept in memory for display"
    )

    @field_validator('journal_timezone')
    @classmethod
    def validate_journal_timezone(cls, v: str) -> str:
        """Reject unknown timezones early rather than at first journal save."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def journal_zone(self) -> ZoneInfo:
        """Get the journal timezone as a ZoneInfo."""
        return ZoneInfo(self.journal_timezone)


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Loaded lazily so the ledger works without a Gemini key

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "storage", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
