"""Server configuration model.

This module provides the ServerOptions Pydantic model describing the
supervised server process and the lifecycle rules applied to it.
"""

from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class ServerOptions(BaseModel):
    """Server configuration section.

    Timing values are in seconds. A non-positive auto_shutdown_after_seconds
    disables the auto-shutdown timer.

    Attributes:
        server_path: Directory containing the server installation.
        executable_name: Server executable, relative to server_path.
        arguments: Extra command-line arguments for the server.
        graceful_shutdown_command: Line written to stdin to request shutdown.
        graceful_shutdown_max_wait_seconds: How long to wait for the server to
            exit after the shutdown command.
        stop_timeout_seconds: How long to wait for a killed process to exit.
        server_ports: Ports that must be free before the first start.
        enable_auto_start: Start the server whenever it is not running.
        auto_start_delay_seconds: Delay before the first poll when auto-start
            is enabled.
        auto_shutdown_after_seconds: Maximum continuous uptime.
        monitoring_interval_seconds: Sleep between polls while nothing happens.
        check_for_updates: Poll the update oracle.
        update_check_interval_seconds: Minimum time between update checks.
        minimum_server_uptime_for_update_seconds: Shortest uptime before an
            update may interrupt the server.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    server_path: Path = Path()
    executable_name: str = ""
    arguments: tuple[str, ...] = ()
    graceful_shutdown_command: str = "stop"
    graceful_shutdown_max_wait_seconds: float = Field(default=30.0, ge=0)
    stop_timeout_seconds: float = Field(default=30.0, ge=5)
    server_ports: tuple[int, ...] = (19132, 19133)

    enable_auto_start: bool = True
    auto_start_delay_seconds: float = Field(default=0.0, ge=0)
    auto_shutdown_after_seconds: int = 0
    monitoring_interval_seconds: float = Field(default=5.0, gt=0)

    check_for_updates: bool = False
    update_check_interval_seconds: int = Field(default=86400, ge=0)
    minimum_server_uptime_for_update_seconds: int = Field(default=0, ge=0)

    @property
    def executable_path(self) -> Path:
        """Return the full path of the server executable."""
        return self.server_path / self.executable_name
