from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from serverkeeper.cli import create_app


@pytest.fixture
def keeper_cli_with_exit_code(
    console: Console, error_console: Console
) -> Callable[..., int]:
    """Run the CLI and return the exit code (0 if no SystemExit)."""
    app = create_app(console=console, error_console=error_console)

    def _run(*args: str) -> int:
        try:
            app.meta(list(args))
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run


@pytest.fixture
def config_file(tmp_path: Path, server_dir: Path) -> Path:
    """Write a config file pointing at the fake server installation."""
    path = tmp_path / "serverkeeper.toml"
    path.write_text(
        f"""
[server]
server_path = "{server_dir.as_posix()}"
executable_name = "bedrock_server"
auto_shutdown_after_seconds = 3600

[updates]
backup_folder = "{(tmp_path / "backups").as_posix()}"
version_api_url = "https://example.invalid/api/links"

[logging]
file = "{(tmp_path / "keeper.log").as_posix()}"
"""
    )
    return path
