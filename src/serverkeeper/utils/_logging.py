"""Structured logging for the supervisor and the CLI.

Loggers are standalone structlog loggers: each one owns its sink and
processor chain, and global structlog configuration is never touched. Two
environment variables adjust the threshold:

- ``SERVERKEEPER_DEBUG``: any non-empty value forces DEBUG.
- ``SERVERKEEPER_LOG_LEVEL``: threshold used when the caller gives none.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Literal, cast

import structlog

from serverkeeper.config import LoggingConfig

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger, Processor

LogFormatType = Literal["json", "text"]

DEBUG_ENV_VAR = "SERVERKEEPER_DEBUG"
LEVEL_ENV_VAR = "SERVERKEEPER_LOG_LEVEL"


def resolve_level(level: str | None = None) -> int:
    """Map a level name to a ``logging`` constant, honouring the environment.

    Unknown names resolve to INFO.
    """
    if getenv(DEBUG_ENV_VAR):
        return logging.DEBUG
    name = level if level is not None else getenv(LEVEL_ENV_VAR, "info")
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _rotating_sink(path: Path, level: int, max_bytes: int, backup_count: int) -> logging.Logger:
    # One stdlib logger per file; propagate is off so nothing reaches the root logger.
    sink = logging.getLogger(f"serverkeeper.sink.{path.resolve()}")
    sink.handlers.clear()
    sink.propagate = False
    sink.setLevel(level)
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    handler.setFormatter(logging.Formatter("%(message)s"))
    sink.addHandler(handler)
    return sink


def _open_sink(
    log_file: str,
    level: int,
    max_bytes: int | None,
    backup_count: int | None,
) -> object:
    if not log_file:
        return structlog.WriteLoggerFactory(file=sys.stderr)()

    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    if max_bytes is None or backup_count is None:
        return structlog.WriteLoggerFactory(file=path.open("a"))()
    return _rotating_sink(path, level, max_bytes, backup_count)


def _processors(log_format: LogFormatType) -> list["Processor"]:
    renderers: list[Processor] = (
        [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
        if log_format == "json"
        else [structlog.dev.ConsoleRenderer(colors=False)]
    )
    return [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        *renderers,
    ]


def create_keeper_logger(
    *,
    level: str | None = None,
    log_format: LogFormatType = "json",
    log_file: str = "",
    max_bytes: int | None = None,
    backup_count: int | None = None,
    command: str = "",
) -> "FilteringBoundLogger":
    """Create the logger used by the supervisor and the CLI commands.

    Args:
        level: Threshold name (debug, info, warning, error). When omitted,
            ``SERVERKEEPER_LOG_LEVEL`` or INFO applies.
        log_format: ``json`` for one object per line, ``text`` for
            ``timestamp [level] event key=value`` lines.
        log_file: File to append to; stderr when empty.
        max_bytes: Rotate the file past this size. Rotation is enabled only
            when backup_count is also given.
        backup_count: Number of rotated files to keep.
        command: CLI command name, bound to every entry when given.
    """
    threshold = resolve_level(level)
    logger = cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            _open_sink(log_file, threshold, max_bytes, backup_count),
            processors=_processors(log_format),
            wrapper_class=structlog.make_filtering_bound_logger(threshold),
            context_class=dict,
        ),
    )
    return logger.bind(command=command) if command else logger


def logger_from_config(config: LoggingConfig, *, command: str = "") -> "FilteringBoundLogger":
    """Create a keeper logger from the ``[logging]`` section."""
    return create_keeper_logger(
        level=config.level.value,
        log_format=cast("LogFormatType", config.format.value),
        log_file=config.file,
        max_bytes=config.max_bytes,
        backup_count=config.backup_count,
        command=command,
    )
