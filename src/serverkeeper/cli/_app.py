# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""The command-line interface for serverkeeper."""

from pathlib import Path
from typing import Annotated, Any

import anyio
from cyclopts import App, Parameter
from rich.console import Console
from rich.table import Table

from serverkeeper.config import (
    Config,
    parse_string_value,
    safe_load_config,
    set_nested_key,
    validate_config,
    validate_installation,
)
from serverkeeper.exceptions import (
    BackupError,
    ConfigError,
    ConfigValidationError,
    PreflightError,
    UpdateCheckError,
)
from serverkeeper.updates import UpdateChecker, VersionClient, ZipBackupService
from serverkeeper.utils import logger_from_config

from ._context import CLIContext
from ._runner import run_keeper
from ._shared import ExitCode, exit_with_error, get_error_console

APP_HELP = "Supervise a game server: auto-start, auto-shutdown, updates and backups."


def parse_overrides(assignments: list[str] | None) -> dict[str, object] | None:
    """Turn ``key=value`` assignments into a nested override dictionary.

    Values are typed like environment variables (bools, numbers, JSON).

    Raises:
        ValueError: If an assignment has no ``=``.
    """
    if not assignments:
        return None
    overrides: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep or not key.strip():
            msg = f"Expected key=value, got '{assignment}'"
            raise ValueError(msg)
        set_nested_key(overrides, key.strip(), parse_string_value(value.strip()))
    return overrides


def _flatten(data: dict[str, Any], prefix: str = "") -> list[tuple[str, str]]:  # pyright: ignore[reportExplicitAny]
    rows: list[tuple[str, str]] = []
    for key in sorted(data):
        value = data[key]
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            rows.extend(_flatten(value, path))  # pyright: ignore[reportUnknownArgumentType]
        else:
            rows.append((path, str(value)))
    return rows


def _register_commands(app: App, console: Console, error_console: Console) -> None:
    @app.command(name="run")
    def run_command() -> None:
        """Supervise the server until interrupted."""
        ctx = CLIContext.get_current()
        issues = validate_installation(ctx.config.server)
        if issues:
            for issue in issues:
                error_console.print(f"[red]{issue.key}[/red]: {issue.message} ({issue.actual})")
            raise SystemExit(ExitCode.VALIDATION_ERROR)

        failure: tuple[str, ExitCode] | None = None
        try:
            anyio.run(run_keeper, ctx.config, ctx.logger)
        except* PreflightError as eg:
            failure = (str(eg.exceptions[0]), ExitCode.PREFLIGHT_ERROR)
        except* Exception as eg:
            if ctx.logger is not None:
                ctx.logger.exception("keeper_crashed")
            failure = (f"Unexpected error: {eg.exceptions[0]!r}", ExitCode.INTERNAL_ERROR)
        if failure is not None:
            exit_with_error(failure[0], failure[1], console=error_console)

    @app.command(name="check-update")
    def check_update(
        *,
        current_version: Annotated[
            str, Parameter(help="Version to compare against the published one.")
        ] = "unknown",
    ) -> None:
        """Check whether a newer server version is published."""
        ctx = CLIContext.get_current()
        checker = UpdateChecker(
            VersionClient(ctx.config.updates, logger=ctx.logger), logger=ctx.logger
        )
        try:
            result = anyio.run(checker.check_for_newer_version, current_version)
        except UpdateCheckError as e:
            exit_with_error(str(e), ExitCode.UPDATE_ERROR, console=error_console)

        style = "yellow" if result.available else "green"
        console.print(f"[{style}]{result.message}[/{style}]")

    @app.command(name="backup")
    def backup() -> None:
        """Create a backup of the server directory now."""
        ctx = CLIContext.get_current()
        service = ZipBackupService(ctx.config.server, ctx.config.updates, logger=ctx.logger)
        try:
            path = anyio.run(service.create_backup)
        except BackupError as e:
            exit_with_error(str(e), ExitCode.IO_ERROR, console=error_console)
        console.print(f"Backup written to [bold]{path}[/bold]")

    config_app = App(name="config", help="Inspect the effective configuration.")

    @config_app.command(name="show")
    def config_show(
        *,
        changed: Annotated[
            bool, Parameter(help="Only list values that differ from the defaults.")
        ] = False,
    ) -> None:
        """Print the effective configuration."""
        ctx = CLIContext.get_current()
        layers = [
            f"{source.name} ({source.path})" if source.path else str(source.name)
            for source in ctx.config.sources
            if source.exists
        ]
        table = Table(
            title="Effective configuration",
            caption=f"Layers: {', '.join(layers)}" if layers else None,
        )
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        for key, value in _flatten(ctx.config.to_dict(include_defaults=not changed)):
            table.add_row(key, value)
        console.print(table)
        if ctx.config_error:
            error_console.print(f"[yellow]Warning:[/yellow] {ctx.config_error}")

    @config_app.command(name="validate")
    def config_validate(
        *,
        strict: Annotated[
            bool, Parameter(help="Also reject unknown sections and keys.")
        ] = False,
    ) -> None:
        """Validate the configuration and the server installation."""
        ctx = CLIContext.get_current()
        try:
            config = Config.load(
                config_path=ctx.config_path,
                cli_overrides=ctx.cli_overrides,
            )
        except ConfigValidationError as e:
            for problem in e.problems or (str(e),):
                error_console.print(f"[red]Error:[/red] {problem}")
            raise SystemExit(ExitCode.VALIDATION_ERROR) from e
        except ConfigError as e:
            exit_with_error(str(e), ExitCode.LOAD_ERROR, console=error_console)

        issues = validate_config(config.to_dict(), strict=True) if strict else []
        issues.extend(validate_installation(config.server))
        for issue in issues:
            error_console.print(f"[red]Error:[/red] {issue.key}: {issue.message} ({issue.actual})")
        if issues:
            raise SystemExit(ExitCode.VALIDATION_ERROR)
        console.print("[green]Configuration is valid[/green]")

    app.command(config_app)


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Build the serverkeeper CLI application.

    Args:
        console: Console for regular output.
        error_console: Console for errors and warnings.
        exit_on_error: Whether cyclopts exits on parse errors.

    Returns:
        The configured cyclopts App.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = get_error_console()
    app = App(
        name="serverkeeper",
        help=APP_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
        set_: Annotated[
            list[str] | None,
            Parameter(name="--set", help="Override a setting, e.g. server.enable_auto_start=false"),
        ] = None,
    ) -> None:
        """Launch serverkeeper with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            config: Explicit path to config file.
            set_: key=value overrides applied on top of file and environment.
        """
        try:
            cli_overrides = parse_overrides(set_)
        except ValueError as e:
            exit_with_error(str(e), ExitCode.LOAD_ERROR, console=error_console)

        loaded_config, config_error = safe_load_config(
            config_path=config,
            cli_overrides=cli_overrides,
        )
        command = tokens[0] if tokens else ""
        ctx = CLIContext(
            config=loaded_config,
            config_path=config,
            cli_overrides=cli_overrides,
            config_error=config_error,
            logger=logger_from_config(loaded_config.logging, command=command),
        )
        CLIContext.set_current(ctx)

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    _register_commands(app, console, error_console)
    return app


def main() -> None:
    """Default entrypoint for the `serverkeeper` CLI."""
    app = create_app()
    app.meta()


if __name__ == "__main__":
    main()
