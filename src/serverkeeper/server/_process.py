"""Process manager for the supervised server executable.

This module provides ServerProcess, which spawns the server with anyio,
streams its output into the log, tracks the version the server reports and
implements graceful (stdin command) and forced (kill) shutdown.
"""

import re
import subprocess
from datetime import datetime
from types import TracebackType
from typing import Self, final

import anyio
import anyio.abc
import structlog
from anyio.streams.text import TextReceiveStream
from structlog.typing import FilteringBoundLogger

from serverkeeper.config import ServerOptions
from serverkeeper.lifecycle import Clock, SystemClock

VERSION_MARKER = "Version"
VERSION_PATTERN = re.compile(r"(\d+\.\d+\.\d+\.\d+)")
UNKNOWN_VERSION = "unknown"
DEFAULT_START_PROBE_SECONDS = 3.0


@final
class ServerProcess:
    """Manages the lifecycle of the server subprocess.

    Must be used as an async context manager: the context owns the task
    group that pumps the server's output and watches for its exit. Leaving
    the context kills a server that is still running.

    Start and stop failures are logged and reported as booleans; no method
    raises for a process that will not start or stop.

    Example:
        ```python
        async with ServerProcess(options) as process:
            if await process.start():
                ...
                await process.graceful_stop()
        ```
    """

    __slots__ = (
        "_clock",
        "_exited",
        "_logger",
        "_options",
        "_process",
        "_start_probe_seconds",
        "_start_time",
        "_task_group",
        "_version",
    )

    def __init__(
        self,
        options: ServerOptions,
        *,
        clock: Clock | None = None,
        start_probe_seconds: float = DEFAULT_START_PROBE_SECONDS,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the process manager.

        Args:
            options: Executable, arguments, shutdown command and timeouts.
            clock: Source of start timestamps (SystemClock if None).
            start_probe_seconds: How long start() watches for an early exit.
            logger: Logger to bind; a default structlog logger if None.
        """
        self._options = options
        self._clock: Clock = clock or SystemClock()
        self._start_probe_seconds = start_probe_seconds
        self._process: anyio.abc.Process | None = None
        self._exited: anyio.Event | None = None
        self._start_time: datetime | None = None
        self._version = UNKNOWN_VERSION
        self._task_group: anyio.abc.TaskGroup | None = None
        base_logger: FilteringBoundLogger = logger or structlog.get_logger()
        self._logger = base_logger.bind(component="server_process")

    async def __aenter__(self) -> Self:
        self._task_group = anyio.create_task_group()
        _ = await self._task_group.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        task_group = self._task_group
        if task_group is None:
            return None
        try:
            with anyio.CancelScope(shield=True):
                if self.is_running:
                    _ = await self.force_stop()
        finally:
            task_group.cancel_scope.cancel()
            self._task_group = None
        return await task_group.__aexit__(exc_type, exc_val, exc_tb)

    @property
    def is_running(self) -> bool:
        """Return True if the server process is alive."""
        return self._process is not None and self._process.returncode is None

    @property
    def start_time(self) -> datetime | None:
        """Return when the server was last started, or None if never."""
        return self._start_time

    @property
    def current_version(self) -> str:
        """Return the version the server printed, or "unknown"."""
        return self._version

    @property
    def pid(self) -> int | None:
        """Return the process ID if running, None otherwise."""
        return self._process.pid if self.is_running and self._process else None

    def _handle_line(self, line: str) -> None:
        self._logger.info("server_output", line=line)
        if VERSION_MARKER not in line:
            return
        match = VERSION_PATTERN.search(line)
        if match is not None:
            self._version = match.group(1)
            self._logger.info("server_version_detected", version=self._version)

    async def _pump_output(self, process: anyio.abc.Process) -> None:
        """Log the server's output line by line."""
        if process.stdout is None:
            return
        buffer = ""
        try:
            async for chunk in TextReceiveStream(process.stdout, errors="replace"):
                buffer += chunk
                *lines, buffer = buffer.split("\n")
                for line in lines:
                    self._handle_line(line.rstrip("\r"))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            # Stream closed, which is expected on process exit
            pass
        if buffer.strip():
            self._handle_line(buffer.rstrip("\r"))

    async def _watch(self, process: anyio.abc.Process, exited: anyio.Event) -> None:
        """Wait for the process to exit and record it."""
        try:
            exit_code = await process.wait()
        finally:
            exited.set()
        if exit_code != 0:
            self._logger.warning("server_exited", exit_code=exit_code)
        else:
            self._logger.info("server_exited", exit_code=exit_code)

    async def start(self) -> bool:
        """Spawn the server.

        Returns:
            True if the server is running after the start probe period.

        Raises:
            RuntimeError: If called outside the async context.
        """
        if self._task_group is None:
            msg = "ServerProcess must be entered with 'async with' before start()"
            raise RuntimeError(msg)

        if self.is_running:
            self._logger.warning("server_already_running")
            return True

        executable = self._options.executable_path
        if not executable.is_file():
            self._logger.error("server_executable_missing", path=str(executable))
            return False

        command = [str(executable), *self._options.arguments]
        self._logger.info("server_starting", command=command)
        try:
            process = await anyio.open_process(
                command,
                cwd=self._options.server_path,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            self._logger.error("server_spawn_failed", error=str(e))
            return False

        exited = anyio.Event()
        self._process = process
        self._exited = exited
        self._start_time = self._clock.now()
        self._task_group.start_soon(self._pump_output, process)
        self._task_group.start_soon(self._watch, process, exited)

        with anyio.move_on_after(self._start_probe_seconds):
            await exited.wait()

        if not self.is_running:
            self._logger.error(
                "server_start_failed",
                exit_code=process.returncode,
            )
            return False

        self._logger.info("server_started", pid=process.pid)
        return True

    async def _wait_for_exit(self, timeout: float) -> bool:
        exited = self._exited
        if exited is not None:
            with anyio.move_on_after(timeout):
                await exited.wait()
        return not self.is_running

    async def graceful_stop(self) -> bool:
        """Send the shutdown command and wait for the server to exit.

        Returns:
            True if the server is no longer running.
        """
        process = self._process
        if process is None or not self.is_running:
            return True

        command = self._options.graceful_shutdown_command
        self._logger.info("server_graceful_stop", command=command)
        if process.stdin is None:
            self._logger.warning("server_stdin_unavailable")
            return False
        try:
            await process.stdin.send(f"{command}\n".encode())
        except (anyio.ClosedResourceError, anyio.BrokenResourceError, OSError) as e:
            self._logger.warning("server_stdin_write_failed", error=str(e))
            return not self.is_running

        stopped = await self._wait_for_exit(
            self._options.graceful_shutdown_max_wait_seconds
        )
        if not stopped:
            self._logger.warning(
                "server_graceful_stop_timed_out",
                timeout_seconds=self._options.graceful_shutdown_max_wait_seconds,
            )
        return stopped

    async def force_stop(self) -> bool:
        """Kill the server and wait for it to exit.

        Returns:
            True if the server is no longer running.
        """
        process = self._process
        if process is None or not self.is_running:
            return True

        self._logger.warning("server_force_stop", pid=process.pid)
        try:
            process.kill()
        except ProcessLookupError:
            # Process already exited
            pass

        stopped = await self._wait_for_exit(self._options.stop_timeout_seconds)
        if not stopped:
            self._logger.error(
                "server_force_stop_timed_out",
                timeout_seconds=self._options.stop_timeout_seconds,
            )
        return stopped
