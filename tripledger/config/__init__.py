"""Configuration package."""

from tripledger.config.settings import (
    AppSettings,
    RemoteSettings,
    Settings,
    StoreSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "RemoteSettings",
    "Settings",
    "StoreSettings",
    "get_settings",
    "validate_all_settings",
]
