"""Lifecycle controller.

This module provides the LifecycleController, which drives the poll loop:
it asks the ModeOverrideProvider for a verdict, dispatches the matching
action to the process, backup and patch collaborators, and loops until its
cancel scope is cancelled.
"""

from typing import final

import anyio
import anyio.lowlevel
import structlog
from structlog.typing import FilteringBoundLogger

from serverkeeper.config import ServerOptions
from serverkeeper.exceptions import PatchVersionError

from ._models import LifecycleStatus, Patched, ShutdownMode, Started, Stopped, StopReason
from ._overrides import ModeOverrideProvider
from ._protocol import BackupService, PatchApplier, PreflightService, ProcessManager

DEFAULT_SETTLE_DELAY = 1.0
DEFAULT_STOP_TIMEOUT = 60.0
DEFAULT_STOP_POLL_INTERVAL = 0.5


@final
class LifecycleController:
    """Runs the supervision loop for a single server process.

    Verdicts that change the process (Started, Stopped, Patched) are followed
    by an immediate re-poll; Monitored, Idle and Error sleep for
    ``monitoring_interval_seconds`` first. Exceptions raised while handling a
    verdict are logged and the loop continues; cancellation is the only way
    out of run().

    Example:
        ```python
        controller = LifecycleController(options, provider, process, backup, patcher)
        async with anyio.create_task_group() as tg:
            tg.start_soon(controller.run)
            ...
            await controller.stop()
            tg.cancel_scope.cancel()
        ```
    """

    __slots__ = (
        "_backup",
        "_logger",
        "_options",
        "_patcher",
        "_preflight",
        "_process",
        "_provider",
        "_settle_delay",
        "_stop_poll_interval",
        "_stop_timeout",
    )

    def __init__(  # noqa: PLR0913
        self,
        options: ServerOptions,
        provider: ModeOverrideProvider,
        process: ProcessManager,
        backup: BackupService,
        patcher: PatchApplier,
        *,
        preflight: PreflightService | None = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
        stop_poll_interval: float = DEFAULT_STOP_POLL_INTERVAL,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            options: Server options; supplies the delays and intervals.
            provider: Source of verdicts, also the target of stop().
            process: The supervised process.
            backup: Creates a backup before every patch.
            patcher: Installs new server versions.
            preflight: Startup cleanup, run once at the top of run().
            settle_delay: Seconds to wait after a stop for ports to be released.
            stop_timeout: Seconds stop() waits for the process to exit.
            stop_poll_interval: Seconds between is_running checks in stop().
            logger: Logger to bind; a default structlog logger if None.
        """
        self._options = options
        self._provider = provider
        self._process = process
        self._backup = backup
        self._patcher = patcher
        self._preflight = preflight
        self._settle_delay = settle_delay
        self._stop_timeout = stop_timeout
        self._stop_poll_interval = stop_poll_interval
        base_logger: FilteringBoundLogger = logger or structlog.get_logger()
        self._logger = base_logger.bind(component="controller")

    async def run(self) -> None:
        """Supervise the server until cancelled.

        Raises:
            PreflightError: If startup cleanup fails.
        """
        if self._preflight is not None:
            cleaned = await self._preflight.check_and_cleanup()
            self._logger.info("preflight_complete", terminated_leftovers=cleaned)

        try:
            if self._options.enable_auto_start and self._options.auto_start_delay_seconds:
                self._logger.info(
                    "auto_start_delayed",
                    delay_seconds=self._options.auto_start_delay_seconds,
                )
                await anyio.sleep(self._options.auto_start_delay_seconds)

            while True:
                await anyio.lowlevel.checkpoint()
                try:
                    status = await self._provider.get_status()
                    repoll = await self._dispatch(status)
                except Exception:  # noqa: BLE001
                    self._logger.exception("iteration_failed")
                    repoll = False

                if not repoll:
                    await anyio.sleep(self._options.monitoring_interval_seconds)
        except anyio.get_cancelled_exc_class():
            with anyio.CancelScope(shield=True):
                if self._process.is_running:
                    self._logger.info("stopping_on_cancel")
                    await self._stop_process()
            raise

    async def _dispatch(self, status: LifecycleStatus) -> bool:
        """Carry out a verdict.

        Returns:
            True if the loop should poll again immediately.
        """
        match status:
            case Started():
                if not self._process.is_running:
                    self._logger.info("starting_server")
                    if not await self._process.start():
                        self._logger.error("server_start_failed")
                return True
            case Stopped(reason=reason):
                if reason == StopReason.AUTO_SHUTDOWN:
                    self._provider.set_mode(ShutdownMode.DENY_RESTART)
                if self._process.is_running:
                    self._logger.info("stopping_server", reason=reason)
                    await self._stop_process()
                await anyio.sleep(self._settle_delay)
                return True
            case Patched(version=version):
                await self._apply_patch(version)
                return True
            case _:
                return False

    async def _apply_patch(self, version: str) -> None:
        if not version:
            msg = "Patched verdict without a version"
            raise PatchVersionError(msg, version=version)

        backup_path = await self._backup.create_backup()
        self._logger.info("backup_created", path=str(backup_path))
        await self._patcher.apply_update(version)
        self._logger.info("update_applied", version=version)

    async def _stop_process(self) -> None:
        """Stop the process gracefully, killing it if that fails."""
        if await self._process.graceful_stop():
            return
        self._logger.warning("graceful_stop_failed")
        if not await self._process.force_stop():
            self._logger.error("force_stop_failed")

    async def stop(self) -> None:
        """Request a shutdown and wait for the process to exit.

        Switches the provider to SERVICE_SHUTDOWN so the running loop stops
        the server exactly once and then idles. Waits up to ``stop_timeout``
        seconds for the process to go away and kills it if it does not.
        """
        self._provider.set_mode(ShutdownMode.SERVICE_SHUTDOWN)
        if not self._process.is_running:
            return

        with anyio.move_on_after(self._stop_timeout) as scope:
            while self._process.is_running:
                await anyio.sleep(self._stop_poll_interval)

        if scope.cancelled_caught:
            self._logger.warning("stop_timed_out", timeout_seconds=self._stop_timeout)
            await self._process.force_stop()
