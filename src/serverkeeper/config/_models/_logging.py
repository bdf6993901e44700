"""Logging configuration model.

This module provides the LoggingConfig Pydantic model for logging settings.
"""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from serverkeeper.config._models._common import LogFormat, LogLevel


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
        max_bytes: Rotate the log file once it grows past this size.
        backup_count: Number of rotated files to keep.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""
    max_bytes: int | None = Field(default=None, gt=0)
    backup_count: int | None = Field(default=None, ge=0)
