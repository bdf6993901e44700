"""Lifecycle decision engine.

This module provides the StatusDecisionEngine, which turns a snapshot of the
supervised process into the verdict for the current poll. Triggers are
evaluated in strict priority order:

1. Auto-shutdown once the configured maximum uptime is reached
2. Stop the running server when a newer version is published
3. Patch the stopped server when a newer version is published
4. Start the stopped server (or idle when auto-start is disabled)
5. Keep monitoring the running server
"""

from datetime import datetime
from typing import final

import structlog
from structlog.typing import FilteringBoundLogger

from serverkeeper.config import ServerOptions

from ._models import (
    Idle,
    LifecycleStatus,
    Monitored,
    Patched,
    RuntimeSnapshot,
    Started,
    Stopped,
    StopReason,
    UpdateCheckResult,
)
from ._protocol import Clock, ProcessManager, UpdateOracle


def _elapsed_seconds(since: datetime | None, now: datetime) -> float:
    """Return seconds elapsed since a moment; None means infinitely long ago."""
    if since is None:
        return float("inf")
    return (now - since).total_seconds()


@final
class StatusDecisionEngine:
    """Computes the next lifecycle verdict from the process state.

    The engine owns one piece of state, the time of the last completed update
    check, which throttles oracle queries to one per
    ``update_check_interval_seconds``; an interval of 0 disables update
    checks. Oracle failures are logged and treated as "no update";
    determine_status never raises.

    Attributes:
        options: Lifecycle rules to apply.
        last_update_check_time: When the oracle last confirmed there was no
            update (or was queried for a stopped server), or None if never.
    """

    __slots__ = (
        "_clock",
        "_logger",
        "_oracle",
        "_process",
        "last_update_check_time",
        "options",
    )

    def __init__(
        self,
        options: ServerOptions,
        oracle: UpdateOracle,
        *,
        process: ProcessManager | None = None,
        clock: Clock | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            options: Lifecycle rules to apply.
            oracle: Source of update information.
            process: Process to snapshot in evaluate().
            clock: Time source for evaluate().
            logger: Logger to bind; a default structlog logger if None.
        """
        self.options = options
        self.last_update_check_time: datetime | None = None
        self._oracle = oracle
        self._process = process
        self._clock = clock
        base_logger: FilteringBoundLogger = logger or structlog.get_logger()
        self._logger = base_logger.bind(component="decision_engine")
        if options.check_for_updates and options.update_check_interval_seconds == 0:
            self._logger.warning("update_checks_disabled", interval_seconds=0)

    def _update_check_due(self, now: datetime) -> bool:
        # An interval of 0 disables update checks.
        if self.options.update_check_interval_seconds <= 0:
            return False
        elapsed = _elapsed_seconds(self.last_update_check_time, now)
        return elapsed >= self.options.update_check_interval_seconds

    async def _query_oracle(self, current_version: str) -> UpdateCheckResult | None:
        """Ask the oracle for a newer version.

        Returns:
            The oracle's answer, or None if the query failed or the answer
            was unusable.
        """
        try:
            result = await self._oracle.check_for_newer_version(current_version)
        except Exception as e:  # noqa: BLE001
            self._logger.warning(
                "update_check_failed",
                current_version=current_version,
                error=str(e),
            )
            return None

        if result.available and not result.new_version:
            self._logger.warning(
                "update_check_missing_version",
                current_version=current_version,
                message=result.message,
            )
            return None
        return result

    async def determine_status(
        self,
        snapshot: RuntimeSnapshot,
        now: datetime,
    ) -> LifecycleStatus:
        """Return the verdict for this poll.

        Args:
            snapshot: Current state of the supervised process.
            now: The current time.

        Returns:
            The highest-priority verdict that applies.
        """
        options = self.options
        uptime = _elapsed_seconds(snapshot.start_time, now)

        if (
            options.auto_shutdown_after_seconds > 0
            and snapshot.is_running
            and uptime >= options.auto_shutdown_after_seconds
        ):
            self._logger.info(
                "auto_shutdown_due",
                limit_seconds=options.auto_shutdown_after_seconds,
            )
            return Stopped(reason=StopReason.AUTO_SHUTDOWN)

        if (
            options.check_for_updates
            and snapshot.is_running
            and self._update_check_due(now)
        ):
            result = await self._query_oracle(snapshot.current_version)
            if result is not None:
                if not result.available:
                    self.last_update_check_time = now
                elif (
                    snapshot.start_time is not None
                    and uptime >= options.minimum_server_uptime_for_update_seconds
                ):
                    self._logger.info(
                        "update_stop_due",
                        current_version=snapshot.current_version,
                        new_version=result.new_version,
                    )
                    return Stopped(reason=StopReason.UPDATE)
                else:
                    self._logger.info(
                        "update_deferred",
                        new_version=result.new_version,
                        minimum_uptime_seconds=(
                            options.minimum_server_uptime_for_update_seconds
                        ),
                    )

        if (
            options.check_for_updates
            and not snapshot.is_running
            and self._update_check_due(now)
        ):
            self.last_update_check_time = now
            result = await self._query_oracle(snapshot.current_version)
            if result is not None and result.available:
                self._logger.info(
                    "patch_due",
                    current_version=snapshot.current_version,
                    new_version=result.new_version,
                )
                return Patched(result.new_version)

        if not snapshot.is_running:
            return Started() if options.enable_auto_start else Idle()

        return Monitored()

    def snapshot(self) -> RuntimeSnapshot:
        """Read the current state of the attached process.

        Raises:
            RuntimeError: If the engine was built without a process.
        """
        if self._process is None:
            msg = "StatusDecisionEngine has no process to snapshot"
            raise RuntimeError(msg)
        return RuntimeSnapshot(
            is_running=self._process.is_running,
            start_time=self._process.start_time,
            current_version=self._process.current_version,
        )

    async def evaluate(self) -> LifecycleStatus:
        """Snapshot the attached process and decide with the injected clock.

        Raises:
            RuntimeError: If the engine was built without a process or clock.
        """
        if self._clock is None:
            msg = "StatusDecisionEngine has no clock"
            raise RuntimeError(msg)
        return await self.determine_status(self.snapshot(), self._clock.now())
