"""Shared utilities for serverkeeper."""

from ._logging import LogFormatType, create_keeper_logger, logger_from_config

__all__ = [
    "LogFormatType",
    "create_keeper_logger",
    "logger_from_config",
]
