"""Configuration for billcycle.

Settings are loaded once at process start from environment variables (prefix
``BILLCYCLE_``) and an optional ``.env`` file, then passed explicitly to the
storage layer and services.

Usage:
    from billcycle.core.config import BillcycleSettings

    settings = BillcycleSettings()
    store = JsonStore(settings.data_dir)
"""

from enum import Enum
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogFormat(str, Enum):
    """Log renderer selection."""

    CONSOLE = "console"
    JSON = "json"


class BillcycleSettings(BaseSettings):
    """Process-wide settings.

    Environment Variables:
        BILLCYCLE_DATA_DIR: Root directory of the JSON document store
        BILLCYCLE_MONTHS_PREFIX: Key prefix for month documents
        BILLCYCLE_ENTITIES_PREFIX: Key prefix for template documents
        BILLCYCLE_LOG_LEVEL: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        BILLCYCLE_LOG_FORMAT: console or json
    """

    model_config = SettingsConfigDict(
        env_prefix="BILLCYCLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = Field(
        default=Path("data"),
        description="Root directory for stored documents",
    )
    months_prefix: str = Field(
        default="months",
        description="Key prefix under which month documents are stored",
    )
    entities_prefix: str = Field(
        default="entities",
        description="Key prefix under which template lists are stored",
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum log level",
    )
    log_format: LogFormat = Field(
        default=LogFormat.CONSOLE,
        description="Log output renderer",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("months_prefix", "entities_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Strip surrounding slashes from key prefixes."""
        prefix = v.strip().strip("/")
        if not prefix:
            raise ValueError("Key prefix cannot be empty")
        return prefix

    def month_key(self, month: str) -> str:
        """Storage key of a month document."""
        return f"{self.months_prefix}/{month}.json"

    @property
    def bills_key(self) -> str:
        return f"{self.entities_prefix}/bills.json"

    @property
    def incomes_key(self) -> str:
        return f"{self.entities_prefix}/incomes.json"
