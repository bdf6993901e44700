"""Status sources and the mode override provider.

The controller never talks to the decision engine directly. It asks a
ModeOverrideProvider, which forwards to one of three status sources depending
on the active ShutdownMode:

- NORMAL: EngineStatusSource, the decision engine's own verdict
- SERVICE_SHUTDOWN: ShutdownSequence, Stopped exactly once and Idle after
- DENY_RESTART: DenyRestartSource, always Idle
"""

import threading
from typing import final

import structlog
from structlog.typing import FilteringBoundLogger

from ._engine import StatusDecisionEngine
from ._models import Idle, LifecycleStatus, ShutdownMode, Stopped, StopReason
from ._protocol import StatusSource


@final
class EngineStatusSource:
    """Status source that delegates to the decision engine."""

    __slots__ = ("_engine",)

    def __init__(self, engine: StatusDecisionEngine) -> None:
        self._engine = engine

    async def get_status(self) -> LifecycleStatus:
        return await self._engine.evaluate()


@final
class ShutdownSequence:
    """One-shot latch: Stopped on the first call, Idle on every call after.

    The latch is never re-armed. Once it has fired it keeps returning Idle
    for the lifetime of the instance.
    """

    __slots__ = ("_fired", "_lock")

    def __init__(self) -> None:
        self._fired = False
        self._lock = threading.Lock()

    @property
    def fired(self) -> bool:
        """Return True once the Stopped verdict has been handed out."""
        return self._fired

    async def get_status(self) -> LifecycleStatus:
        with self._lock:
            if self._fired:
                return Idle()
            self._fired = True
        return Stopped(reason=StopReason.REQUESTED)


@final
class DenyRestartSource:
    """Status source that always answers Idle."""

    __slots__ = ()

    async def get_status(self) -> LifecycleStatus:
        return Idle()


@final
class ModeOverrideProvider:
    """Routes status requests to the source selected by the shutdown mode.

    Overrides take precedence unconditionally: while SERVICE_SHUTDOWN or
    DENY_RESTART is active the engine is not consulted at all. set_mode may
    be called from another thread or task than get_status.
    """

    __slots__ = ("_lock", "_logger", "_mode", "_sources")

    def __init__(
        self,
        engine: StatusDecisionEngine,
        *,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the provider in NORMAL mode.

        Args:
            engine: Engine consulted in NORMAL mode.
            logger: Logger to bind; a default structlog logger if None.
        """
        self._sources: dict[ShutdownMode, StatusSource] = {
            ShutdownMode.NORMAL: EngineStatusSource(engine),
            ShutdownMode.SERVICE_SHUTDOWN: ShutdownSequence(),
            ShutdownMode.DENY_RESTART: DenyRestartSource(),
        }
        self._mode = ShutdownMode.NORMAL
        self._lock = threading.Lock()
        base_logger: FilteringBoundLogger = logger or structlog.get_logger()
        self._logger = base_logger.bind(component="mode_override")

    @property
    def mode(self) -> ShutdownMode:
        """Return the active shutdown mode."""
        with self._lock:
            return self._mode

    def set_mode(self, mode: ShutdownMode) -> None:
        """Activate a shutdown mode, replacing the current one.

        Args:
            mode: The mode to activate.
        """
        with self._lock:
            previous = self._mode
            self._mode = mode
        if previous != mode:
            self._logger.info("shutdown_mode_changed", previous=previous, mode=mode)

    async def get_status(self) -> LifecycleStatus:
        """Return the verdict of the source for the active mode."""
        with self._lock:
            source = self._sources[self._mode]
        return await source.get_status()
