"""Shared test fixtures for serverkeeper tests."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from rich.console import Console

from serverkeeper.cli import CLIContext
from serverkeeper.config import ServerOptions


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep SERVERKEEPER_* variables from the developer's shell out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("SERVERKEEPER_"):
            monkeypatch.delenv(key)
    yield
    CLIContext.reset()


@pytest.fixture
def server_dir(tmp_path: Path) -> Path:
    """Create a fake server installation with worlds and logs."""
    root = tmp_path / "server"
    (root / "worlds" / "Bedrock level").mkdir(parents=True)
    (root / "worlds" / "Bedrock level" / "level.dat").write_bytes(b"level")
    (root / "logs").mkdir()
    (root / "logs" / "latest.log").write_text("log line\n")
    (root / "behavior_packs").mkdir()
    (root / "behavior_packs" / "pack.json").write_text("{}")
    (root / "server.properties").write_text("server-name=test\n")
    (root / "bedrock_server").write_text("#!/bin/sh\n")
    return root


@pytest.fixture
def server_options(server_dir: Path) -> ServerOptions:
    return ServerOptions(server_path=server_dir, executable_name="bedrock_server")


@pytest.fixture
def console() -> Console:
    return Console(
        width=120,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def error_console() -> Console:
    return Console(
        stderr=True,
        width=120,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )
