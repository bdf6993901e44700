# ruff: noqa: TC003  # Path needed at runtime for dataclass field
"""Per-invocation state shared by the CLI commands.

The meta command builds one CLIContext from the global options (``--config``
and ``--set``) and the loaded configuration; subcommands read it back from a
context variable instead of re-parsing anything.
"""

import contextvars
from dataclasses import dataclass, field
from pathlib import Path

from structlog.typing import FilteringBoundLogger

from serverkeeper.config import Config

_active: contextvars.ContextVar["CLIContext | None"] = contextvars.ContextVar(
    "serverkeeper_cli_context", default=None
)


@dataclass(frozen=True, slots=True)
class CLIContext:
    """What a command needs to know about the current invocation.

    Attributes:
        config: Configuration loaded for this invocation, or the defaults
            when loading failed.
        config_path: File passed with ``--config``.
        cli_overrides: Nested values from ``--set``; commands that reload
            the configuration pass them on.
        config_error: Why loading failed, when it did.
        logger: Logger configured from the ``[logging]`` section.
    """

    config: Config = field(repr=False)
    config_path: Path | None = None
    cli_overrides: dict[str, object] | None = None
    config_error: str | None = None
    logger: FilteringBoundLogger | None = field(default=None, repr=False)

    @classmethod
    def get_current(cls) -> "CLIContext":
        """Return the active context, or one holding default configuration."""
        ctx = _active.get()
        return ctx if ctx is not None else cls(config=Config.from_dict({}))

    @classmethod
    def set_current(cls, ctx: "CLIContext") -> None:
        _ = _active.set(ctx)

    @classmethod
    def reset(cls) -> None:
        """Forget the active context."""
        _ = _active.set(None)
