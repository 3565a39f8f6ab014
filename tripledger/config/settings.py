"""
Configuration Management for Trip Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here: where local state lives, where the
remote sheet endpoint is, and how settlement labels are rendered.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Local durable store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRIPLEDGER_STORE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path(".tripledger"),
        description="Directory holding the persisted JSON documents"
    )
    snapshot_key: str = Field(
        default="tripData",
        min_length=1,
        description="Key of the ledger snapshot document"
    )
    queue_key: str = Field(
        default="syncQueue",
        min_length=1,
        description="Key of the pending mutation queue document"
    )

    @field_validator("data_dir")
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        return v.expanduser()


class RemoteSettings(BaseSettings):
    """Remote authority (Apps Script web app) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRIPLEDGER_REMOTE_",
        extra="ignore"
    )

    script_url: str = Field(
        ...,
        description="URL of the deployed web app serving snapshots and accepting commands"
    )
    timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Per-request timeout"
    )
    fetch_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a snapshot fetch is attempted on transport errors"
    )
    retry_min_wait_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Lower bound of the exponential wait between fetch attempts"
    )
    retry_max_wait_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Upper bound of the exponential wait between fetch attempts"
    )

    @field_validator("script_url")
    @classmethod
    def validate_script_url(cls, v: str) -> str:
        """Only http(s) endpoints make sense here."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"script_url must be an http(s) URL, got: {v}")
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

    # Logging
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG level (ledger recomputes included)"
    )

    # Settlement display
    settle_threshold: float = Field(
        default=1.0,
        ge=0.0,
        description="Nets within +/- this amount are reported as settled"
    )
    currency_symbol: str = Field(
        default="₹",
        max_length=5,
        description="Prefix used in Get/Pay labels"
    )

    # Sync
    refresh_interval_seconds: float = Field(
        default=300.0,
        gt=0,
        description="How often a running core pulls a fresh snapshot"
    )


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

    # Sub-settings are loaded lazily so that a missing remote URL
    # does not prevent offline use.

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def remote(self) -> RemoteSettings:
        return RemoteSettings()

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

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries describing failures.
    """
    results = {}

    settings = get_settings()

    for name in ("store", "remote", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValidationError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
