"""Configuration package."""

from finledger.config.settings import (
    CsvSettings,
    LedgerSettings,
    LoggingSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "CsvSettings",
    "LedgerSettings",
    "LoggingSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
