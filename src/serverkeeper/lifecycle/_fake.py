# ruff: noqa: TC003  # datetime and Path needed at runtime for dataclass fields
"""Fake collaborators for testing.

This module provides in-memory implementations of the lifecycle protocols
so the decision engine and the controller can be exercised without a real
server process, network access or filesystem.

Example:
    >>> clock = FakeClock()
    >>> process = FakeProcessManager(clock=clock)
    >>> oracle = FakeUpdateOracle()
    >>> oracle.result = UpdateCheckResult(True, "newer", "1.0.1")
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

from ._models import UpdateCheckResult


@dataclass(slots=True)
class FakeClock:
    """Manually advanced clock."""

    current: datetime = field(
        default_factory=lambda: datetime(2024, 1, 1, tzinfo=UTC),
    )

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        """Move the clock forward and return the new time."""
        self.current += timedelta(seconds=seconds)
        return self.current


@dataclass(slots=True)
class FakeProcessManager:
    """Process manager that only flips flags.

    The ``*_result`` fields decide what each operation reports. A successful
    start marks the process running with ``start_time`` taken from the clock;
    a successful stop marks it not running.
    """

    running: bool = False
    started_at: datetime | None = None
    version: str = "1.0.0"
    clock: FakeClock | None = None
    start_result: bool = True
    graceful_result: bool = True
    force_result: bool = True
    start_calls: int = 0
    graceful_calls: int = 0
    force_calls: int = 0

    @property
    def is_running(self) -> bool:
        return self.running

    @property
    def start_time(self) -> datetime | None:
        return self.started_at

    @property
    def current_version(self) -> str:
        return self.version

    async def start(self) -> bool:
        self.start_calls += 1
        if self.start_result:
            self.running = True
            self.started_at = self.clock.now() if self.clock else datetime.now(UTC)
        return self.start_result

    async def graceful_stop(self) -> bool:
        self.graceful_calls += 1
        if self.graceful_result:
            self.running = False
        return self.graceful_result

    async def force_stop(self) -> bool:
        self.force_calls += 1
        if self.force_result:
            self.running = False
        return self.force_result


@dataclass(slots=True)
class FakeUpdateOracle:
    """Update oracle returning a canned result, or raising ``error`` if set."""

    result: UpdateCheckResult = field(
        default_factory=lambda: UpdateCheckResult(available=False, message="up to date")
    )
    error: Exception | None = None
    calls: list[str] = field(default_factory=list)

    async def check_for_newer_version(self, current_version: str) -> UpdateCheckResult:
        self.calls.append(current_version)
        if self.error is not None:
            raise self.error
        return self.result


@dataclass(slots=True)
class FakePatchApplier:
    """Patch applier that records versions, or raises ``error`` if set."""

    error: Exception | None = None
    applied: list[str] = field(default_factory=list)

    async def apply_update(self, version: str) -> None:
        if self.error is not None:
            raise self.error
        self.applied.append(version)


@dataclass(slots=True)
class FakeBackupService:
    """Backup service that returns a fixed path and counts calls."""

    path: Path = field(default_factory=lambda: Path("/fake/backups/backup.zip"))
    error: Exception | None = None
    calls: int = 0

    async def create_backup(self) -> Path:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.path


@dataclass(slots=True)
class FakePreflightService:
    """Preflight service returning ``result``, or raising ``error`` if set."""

    result: bool = False
    error: Exception | None = None
    calls: int = 0

    async def check_and_cleanup(self) -> bool:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result
