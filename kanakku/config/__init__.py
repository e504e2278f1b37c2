"""Configuration package."""

from kanakku.config.settings import (
    AppSettings,
    DeliverySettings,
    GeminiSettings,
    SecuritySettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "DeliverySettings",
    "GeminiSettings",
    "SecuritySettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
