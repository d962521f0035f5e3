"""
Configuration Management for the Finance Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every setting has a safe default so the ledger works without any
environment at all; variables only override behaviour.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Behaviour of the ledger engine itself."""

    model_config = SettingsConfigDict(
        env_prefix="FINLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    enforce_pot_bounds: bool = Field(
        default=True,
        description=(
            "Reject pot deposits above the free balance and "
            "withdrawals above the saved amount"
        )
    )


class StorageSettings(BaseSettings):
    """Snapshot persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINLEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    state_file: Path = Field(
        default=Path("finance_state.json"),
        description="Where the JSON snapshot is written"
    )
    autosave: bool = Field(
        default=True,
        description="Persist a snapshot after every mutation"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for writing the snapshot file"
    )


class CsvSettings(BaseSettings):
    """CSV import/export format."""

    model_config = SettingsConfigDict(
        env_prefix="FINLEDGER_CSV_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    delimiter: str = Field(
        default=",",
        min_length=1,
        max_length=1,
        description="Field delimiter"
    )
    date_format: str = Field(
        default="%d.%m.%y",
        description="strptime/strftime format of the date column"
    )

    @field_validator('delimiter')
    @classmethod
    def validate_delimiter(cls, v: str) -> str:
        """The quote character cannot double as delimiter."""
        if v == '"':
            raise ValueError("Delimiter cannot be the quote character")
        return v


class LoggingSettings(BaseSettings):
    """structlog output configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINLEDGER_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    json_output: bool = Field(
        default=True,
        description="Render JSON lines (False renders human-readable console output)"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {allowed}")
        return v.upper()


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

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def csv(self) -> CsvSettings:
        return CsvSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


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

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the ones that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("ledger", "storage", "csv", "logging"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
