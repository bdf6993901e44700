"""Enums and records shared by the configuration models."""

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any


class LogLevel(StrEnum):
    """Threshold for the ``[logging]`` section, most verbose first."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    JSON = "json"
    TEXT = "text"


class ConfigSourceName(StrEnum):
    """Where a layer of configuration came from.

    Declared in precedence order: a CLI override beats the environment,
    which beats the file, which beats the built-in defaults.
    """

    CLI = "cli"
    ENV = "env"
    FILE = "file"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """One layer consulted by Config.load.

    Attributes:
        name: Kind of layer.
        path: The TOML file for FILE layers, otherwise None.
        exists: False when the file is absent or the environment held no
            matching variables.
        values: The nested values the layer contributed.
    """

    name: ConfigSourceName
    path: Path | None
    exists: bool
    values: dict[str, Any]  # pyright: ignore[reportExplicitAny]
