"""Configuration models.

This module provides Pydantic models for serverkeeper configuration sections
and the main Config container class.
"""

from serverkeeper.config._models._common import (
    ConfigSource,
    ConfigSourceName,
    LogFormat,
    LogLevel,
)
from serverkeeper.config._models._config import Config
from serverkeeper.config._models._logging import LoggingConfig
from serverkeeper.config._models._server import ServerOptions
from serverkeeper.config._models._updates import UpdateOptions

__all__ = [
    "Config",
    "ConfigSource",
    "ConfigSourceName",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ServerOptions",
    "UpdateOptions",
]
