"""Configuration package."""

from ledger_engine.config.settings import (
    AppSettings,
    DatabaseSettings,
    EngineSettings,
    GeminiSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "EngineSettings",
    "GeminiSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
