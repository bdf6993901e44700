"""Command-line interface for serverkeeper."""

from ._app import create_app, main, parse_overrides
from ._context import CLIContext
from ._runner import build_controller, run_keeper, supervise

__all__ = [
    "CLIContext",
    "build_controller",
    "create_app",
    "main",
    "parse_overrides",
    "run_keeper",
    "supervise",
]
