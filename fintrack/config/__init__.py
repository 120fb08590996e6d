"""Configuration package."""

from fintrack.config.settings import (
    AppSettings,
    CorsSettings,
    DatabaseSettings,
    SecuritySettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CorsSettings",
    "DatabaseSettings",
    "SecuritySettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
