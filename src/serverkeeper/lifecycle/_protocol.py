"""Protocol definitions for the lifecycle core.

This module defines the collaborator interfaces the decision engine and the
controller depend on, so that process handling, update checks, patching and
backups can be swapped for fakes in tests:
- Clock: Source of the current time
- ProcessManager: Start/stop control and state of the supervised process
- UpdateOracle: Reports whether a newer server version is published
- PatchApplier: Downloads and installs a server version
- BackupService: Archives the server installation
- PreflightService: Cleans up leftovers before the first start
- StatusSource: Anything that can produce a lifecycle verdict
"""

from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from ._models import LifecycleStatus, UpdateCheckResult


@runtime_checkable
class Clock(Protocol):
    """Protocol for reading the current time."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""
        ...


@runtime_checkable
class ProcessManager(Protocol):
    """Protocol for controlling the supervised server process.

    Start and stop failures are reported through the boolean results and
    never raised.
    """

    @property
    def is_running(self) -> bool:
        """Return True if the server process is alive."""
        ...

    @property
    def start_time(self) -> datetime | None:
        """Return when the server was last started, or None if never."""
        ...

    @property
    def current_version(self) -> str:
        """Return the version reported by the server."""
        ...

    async def start(self) -> bool:
        """Start the server process.

        Returns:
            True if the process is running after the attempt.
        """
        ...

    async def graceful_stop(self) -> bool:
        """Ask the server to shut itself down.

        Returns:
            True if the process exited (or was not running).
        """
        ...

    async def force_stop(self) -> bool:
        """Kill the server process.

        Returns:
            True if the process is gone afterwards.
        """
        ...


@runtime_checkable
class UpdateOracle(Protocol):
    """Protocol for checking whether a newer server version exists."""

    async def check_for_newer_version(self, current_version: str) -> UpdateCheckResult:
        """Compare the running version with the latest published one.

        Args:
            current_version: Version reported by the running server.

        Returns:
            The result of the check.

        Raises:
            UpdateCheckError: If the latest version cannot be determined.
        """
        ...


@runtime_checkable
class PatchApplier(Protocol):
    """Protocol for installing a server version over the current one."""

    async def apply_update(self, version: str) -> None:
        """Download and install the given version.

        Args:
            version: The version to install.

        Raises:
            PatchError: If the update cannot be applied.
        """
        ...


@runtime_checkable
class BackupService(Protocol):
    """Protocol for archiving the server installation."""

    async def create_backup(self) -> Path:
        """Create a backup archive.

        Returns:
            Path to the created archive.

        Raises:
            BackupError: If the archive cannot be written.
        """
        ...


@runtime_checkable
class PreflightService(Protocol):
    """Protocol for startup cleanup, run once before the first poll."""

    async def check_and_cleanup(self) -> bool:
        """Terminate leftover server processes and verify ports are free.

        Returns:
            True if a leftover process was terminated.

        Raises:
            PreflightError: If required ports are still in use.
        """
        ...


@runtime_checkable
class StatusSource(Protocol):
    """Protocol for anything that produces a lifecycle verdict."""

    async def get_status(self) -> LifecycleStatus:
        """Return the verdict for the current poll."""
        ...
