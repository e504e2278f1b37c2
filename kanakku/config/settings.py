"""
Configuration Management for Kanakku

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what knobs exist and ensures all
required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SecuritySettings(BaseSettings):
    """Encryption codec configuration."""

    model_config = SettingsConfigDict(
        env_prefix="KANAKKU_SECURITY_",
        extra="ignore"
    )

    default_passphrase: str = Field(
        default="kanakku-local-vault-v1",
        min_length=8,
        description="Passphrase used when the user does not supply a backup password"
    )
    kdf_iterations: int = Field(
        default=200_000,
        ge=1_000,
        le=5_000_000,
        description="PBKDF2 iteration count for newly encrypted payloads"
    )


class StorageSettings(BaseSettings):
    """Local key-value store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="KANAKKU_STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path(".kanakku"),
        description="Directory holding the persisted store"
    )
    store_filename: str = Field(
        default="store.json",
        description="Name of the JSON document inside data_dir"
    )
    audit_log_size: int = Field(
        default=200,
        ge=0,
        le=10_000,
        description="How many audit events to keep in the store (0 disables)"
    )

    @property
    def store_path(self) -> Path:
        return self.data_dir / self.store_filename


class DeliverySettings(BaseSettings):
    """Backup / export delivery configuration."""

    model_config = SettingsConfigDict(
        env_prefix="KANAKKU_DELIVERY_",
        extra="ignore"
    )

    outbox_dir: Path = Field(
        default=Path(".kanakku/outbox"),
        description="Directory where backups and exports are dropped for sharing"
    )
    fallback_recipient: str = Field(
        default="user@example.com",
        description="Recipient used when the profile has no email"
    )


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (natural-language entry assist)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=512,
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Log level for the structured logger"
    )

    # Backups
    backup_ring_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many local backups to keep (oldest evicted)"
    )
    backup_version: str = Field(
        default="1.0",
        description="Version stamped into backup metadata"
    )

    # Profile defaults
    default_currency: str = Field(
        default="₹",
        description="Currency symbol for new profiles"
    )
    default_language: str = Field(
        default="en",
        description="Language code for new profiles"
    )

    # Validation thresholds
    max_amount: float = Field(
        default=100_000_000.0,
        description="Amounts above this are flagged for review (warning only)"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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

    # Note: These are loaded lazily to allow partial configuration
    # (e.g. no Gemini key when entry assist is unused)

    @property
    def security(self) -> SecuritySettings:
        return SecuritySettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def delivery(self) -> DeliverySettings:
        return DeliverySettings()

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

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, Optional[bool | str]]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus
    {setting_name}_error entries for the groups that failed.
    Useful for startup checks.
    """
    results: dict[str, Optional[bool | str]] = {}

    settings = get_settings()

    for name in ("security", "storage", "delivery", "gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
