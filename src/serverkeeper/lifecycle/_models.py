"""Data models for the lifecycle core.

This module defines the core data types for lifecycle decisions:
- LifecycleStatus: Tagged union of per-poll verdicts
- StopReason: Why a Stopped verdict was produced
- ShutdownMode: Override modes of the status provider
- RuntimeSnapshot: Point-in-time view of the supervised process
- UpdateCheckResult: Answer from the update oracle
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class StopReason(StrEnum):
    """Why the server should be stopped.

    - REQUESTED: The host asked for a shutdown
    - AUTO_SHUTDOWN: The configured maximum uptime was reached
    - UPDATE: A newer version is waiting to be installed
    """

    REQUESTED = "requested"
    AUTO_SHUTDOWN = "auto_shutdown"
    UPDATE = "update"


@dataclass(frozen=True, slots=True)
class Started:
    """The server should be started."""


@dataclass(frozen=True, slots=True)
class Stopped:
    """The server should be stopped.

    The reason is informational and does not take part in equality, so every
    Stopped verdict compares equal to every other.

    Attributes:
        reason: What triggered the stop.
    """

    reason: StopReason = field(default=StopReason.REQUESTED, compare=False)


@dataclass(frozen=True, slots=True)
class Monitored:
    """The server is running and up to date."""


@dataclass(frozen=True, slots=True)
class Idle:
    """Nothing to do this poll."""


@dataclass(frozen=True, slots=True)
class Patched:
    """The stopped server should be updated to a new version.

    Attributes:
        version: The version to install. Never empty.
    """

    version: str

    def __post_init__(self) -> None:
        if not self.version:
            msg = "Patched requires a non-empty version"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class Error:
    """The status could not be determined."""

    message: str = field(default="", compare=False)


type LifecycleStatus = Started | Stopped | Monitored | Idle | Patched | Error


class ShutdownMode(StrEnum):
    """Override modes of the status provider.

    Exactly one mode is active at a time; the last call to set_mode wins.
    - NORMAL: Verdicts come from the decision engine
    - SERVICE_SHUTDOWN: The host service is stopping; stop once, then idle
    - DENY_RESTART: Always idle; used after an auto-shutdown fired
    """

    NORMAL = "normal"
    SERVICE_SHUTDOWN = "service_shutdown"
    DENY_RESTART = "deny_restart"


@dataclass(frozen=True, slots=True)
class RuntimeSnapshot:
    """Point-in-time view of the supervised process.

    Attributes:
        is_running: Whether the process is alive.
        start_time: When the process was started, or None if it never was.
        current_version: Version reported by the running server.
    """

    is_running: bool
    start_time: datetime | None = None
    current_version: str = "unknown"


@dataclass(frozen=True, slots=True)
class UpdateCheckResult:
    """Answer from an update oracle.

    Attributes:
        available: Whether a different version is published.
        message: Human-readable summary of the check.
        new_version: The published version, empty when none is available.
    """

    available: bool
    message: str = ""
    new_version: str = ""
