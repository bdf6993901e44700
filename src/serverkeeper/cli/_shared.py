"""Exit codes and error output shared by the commands."""

from enum import IntEnum
from typing import Never

from rich.console import Console


class ExitCode(IntEnum):
    """Process exit status of a serverkeeper command."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    UPDATE_ERROR = 3
    IO_ERROR = 4
    INTERNAL_ERROR = 5
    PREFLIGHT_ERROR = 6


def get_error_console() -> Console:
    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print ``message`` as an error and exit with ``code``."""
    if console is None:
        console = get_error_console()
    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)
