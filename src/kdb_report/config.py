"""
Configuration: typed, validated settings for a report run.

Two layers:
  - ReportSettings (pydantic-settings): ambient settings loaded from the
    environment (prefix KDB_REPORT_) or a .env file in the working
    directory: log level, an optional fixed "now", input encoding.
  - RunOptions (pydantic): which reports to print and the valid/invalid
    modifiers, filled in by the CLI from its flags.

RunOptions is the explicit run context threaded through the aggregator
and the report generators; nothing reads report toggles from globals.
"""

from __future__ import annotations

import codecs
import logging
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kdb_report.domain.flags import flag_bit

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ReportSettings(BaseSettings):
    """
    Ambient settings for the analyzer.

    Load order (highest priority first):
      1. Values passed by the CLI (e.g. --log-level)
      2. Environment variables (KDB_REPORT_LOG_LEVEL, KDB_REPORT_NOW, ...)
      3. .env file
      4. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="KDB_REPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="WARNING", description="structlog filtering level")
    now: datetime | None = Field(
        default=None,
        description="Fixed run-start instant; the current time when unset",
    )
    encoding: str = Field(default="utf-8", description="Text encoding of the dump file")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {value!r}")
        return level

    @field_validator("now")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        """Naive instants are taken as UTC, like every date in a dump."""
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as e:
            raise ValueError(f"Unknown encoding {value!r}") from e
        return value

    def run_started_at(self) -> datetime:
        """The single "now" of this run: the configured instant, or the clock."""
        return self.now if self.now is not None else datetime.now(UTC)

    def logging_level(self) -> int:
        return getattr(logging, self.log_level, logging.WARNING)


class RunOptions(BaseModel):
    """
    Report selection for one run.

    When no report is selected, the principal list is printed.
    `valid_only` / `invalid_only` only change the expiry-related reports.
    """

    model_config = ConfigDict(frozen=True)

    summary: bool = False
    des: bool = False
    des3: bool = False
    arcfour: bool = False
    aes: bool = False
    flags: bool = False
    find_flag: str | None = None
    passwd_expiry: bool = False
    princ_expiry: bool = False
    monthly: bool = False
    passwd_delta: bool = False
    debug: bool = False
    valid_only: bool = False
    invalid_only: bool = False

    @field_validator("find_flag")
    @classmethod
    def validate_find_flag(cls, value: str | None) -> str | None:
        """Reject unknown flag names up front; raises UnknownFlagError."""
        if value is not None:
            flag_bit(value)
        return value

    @property
    def any_report_selected(self) -> bool:
        return any((
            self.summary,
            self.des,
            self.des3,
            self.arcfour,
            self.aes,
            self.flags,
            self.find_flag is not None,
            self.passwd_expiry,
            self.princ_expiry,
            self.monthly,
            self.passwd_delta,
            self.debug,
        ))
