"""Lifecycle core for a single supervised server process.

This package decides what should happen to the server on every poll and
carries the decision out.

Key Components:
    - LifecycleStatus: Per-poll verdict (Started, Stopped, Monitored, Idle,
      Patched, Error)
    - StatusDecisionEngine: Priority-ordered decision logic with update-check
      throttling
    - ModeOverrideProvider: Forces a safe shutdown sequence over the engine
    - LifecycleController: Poll loop dispatching verdicts to collaborators
    - Fake*: In-memory collaborators for tests

Example:
    >>> engine = StatusDecisionEngine(options, oracle, process=process, clock=SystemClock())
    >>> provider = ModeOverrideProvider(engine)
    >>> controller = LifecycleController(options, provider, process, backup, patcher)
    >>> await controller.run()  # Blocks until cancelled
"""

from ._clock import SystemClock
from ._controller import LifecycleController
from ._engine import StatusDecisionEngine
from ._fake import (
    FakeBackupService,
    FakeClock,
    FakePatchApplier,
    FakePreflightService,
    FakeProcessManager,
    FakeUpdateOracle,
)
from ._models import (
    Error,
    Idle,
    LifecycleStatus,
    Monitored,
    Patched,
    RuntimeSnapshot,
    ShutdownMode,
    Started,
    Stopped,
    StopReason,
    UpdateCheckResult,
)
from ._overrides import (
    DenyRestartSource,
    EngineStatusSource,
    ModeOverrideProvider,
    ShutdownSequence,
)
from ._protocol import (
    BackupService,
    Clock,
    PatchApplier,
    PreflightService,
    ProcessManager,
    StatusSource,
    UpdateOracle,
)

__all__ = [
    "BackupService",
    "Clock",
    "DenyRestartSource",
    "EngineStatusSource",
    "Error",
    "FakeBackupService",
    "FakeClock",
    "FakePatchApplier",
    "FakePreflightService",
    "FakeProcessManager",
    "FakeUpdateOracle",
    "Idle",
    "LifecycleController",
    "LifecycleStatus",
    "ModeOverrideProvider",
    "Monitored",
    "PatchApplier",
    "Patched",
    "PreflightService",
    "ProcessManager",
    "RuntimeSnapshot",
    "ShutdownMode",
    "ShutdownSequence",
    "Started",
    "StatusDecisionEngine",
    "StatusSource",
    "StopReason",
    "Stopped",
    "SystemClock",
    "UpdateCheckResult",
    "UpdateOracle",
]
