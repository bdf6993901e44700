"""Startup cleanup for the supervised server.

PreflightCheck runs once before the first poll. It terminates server
processes left behind by a previous supervisor run and then refuses to
continue if the server's ports are still bound by something else.
"""

from typing import final

import anyio
import anyio.to_thread
import psutil
import structlog
from structlog.typing import FilteringBoundLogger

from serverkeeper.config import ServerOptions
from serverkeeper.exceptions import PreflightError

DEFAULT_KILL_TIMEOUT = 10.0
DEFAULT_SETTLE_SECONDS = 1.0


@final
class PreflightCheck:
    """Terminates leftover server processes and verifies the ports are free."""

    __slots__ = ("_kill_timeout", "_logger", "_options", "_settle_seconds")

    def __init__(
        self,
        options: ServerOptions,
        *,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT,
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the check.

        Args:
            options: Supplies the executable name and the ports to verify.
            kill_timeout: Seconds to wait for terminated processes to exit.
            settle_seconds: Pause after terminating leftovers.
            logger: Logger to bind; a default structlog logger if None.
        """
        self._options = options
        self._kill_timeout = kill_timeout
        self._settle_seconds = settle_seconds
        base_logger: FilteringBoundLogger = logger or structlog.get_logger()
        self._logger = base_logger.bind(component="preflight")

    def _executable_names(self) -> set[str]:
        name = self._options.executable_path.name
        stem = self._options.executable_path.stem
        return {n for n in (name, stem) if n}

    def find_leftover_processes(self) -> list[psutil.Process]:
        """Return running processes whose name matches the server executable."""
        names = self._executable_names()
        if not names:
            return []
        leftovers: list[psutil.Process] = []
        for proc in psutil.process_iter(["name"]):
            try:
                if proc.info["name"] in names:
                    leftovers.append(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return leftovers

    def _terminate(self, leftovers: list[psutil.Process]) -> None:
        for proc in leftovers:
            self._logger.warning("terminating_leftover_process", pid=proc.pid)
            try:
                proc.kill()
            except psutil.NoSuchProcess:
                continue
        _, alive = psutil.wait_procs(leftovers, timeout=self._kill_timeout)
        for proc in alive:
            self._logger.error("leftover_process_survived", pid=proc.pid)

    def find_ports_in_use(self) -> tuple[int, ...]:
        """Return the configured ports that are bound locally."""
        wanted = set(self._options.server_ports)
        if not wanted:
            return ()
        try:
            connections = psutil.net_connections(kind="inet")
        except psutil.AccessDenied:
            self._logger.warning("port_check_not_permitted")
            return ()
        in_use = {
            conn.laddr.port
            for conn in connections
            if conn.laddr and conn.laddr.port in wanted
        }
        return tuple(sorted(in_use))

    def _check(self) -> bool:
        leftovers = self.find_leftover_processes()
        if leftovers:
            self._logger.warning("leftover_processes_found", count=len(leftovers))
            self._terminate(leftovers)
        else:
            self._logger.debug("no_leftover_processes")

        ports = self.find_ports_in_use()
        if ports:
            port_list = ", ".join(str(p) for p in ports)
            msg = f"Required ports {port_list} are in use by another process"
            raise PreflightError(msg, ports=ports)
        return bool(leftovers)

    async def check_and_cleanup(self) -> bool:
        """Terminate leftover server processes and verify the ports are free.

        Returns:
            True if a leftover process was terminated.

        Raises:
            PreflightError: If a server port is still bound.
        """
        self._logger.info("preflight_started", ports=list(self._options.server_ports))
        terminated = await anyio.to_thread.run_sync(self._check)
        if terminated:
            await anyio.sleep(self._settle_seconds)
        return terminated
