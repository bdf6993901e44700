"""serverkeeper exceptions."""

from pathlib import Path
from typing import Any


class KeeperError(Exception):
    """Base exception for serverkeeper errors."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(KeeperError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when a configuration file cannot be read as TOML.

    ``line`` and ``column`` point at the syntax error, 1-based.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation.

    Attributes:
        key: Dotted path of the first offending key.
        value: The rejected value.
        expected: What the key expected.
        problems: Every validation problem found, as ``key: message`` strings.
        source: Where the configuration came from, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        expected: str,
        problems: tuple[str, ...] = (),
        source: str | None = None,
    ) -> None:
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.problems: tuple[str, ...] = problems
        self.source: str | None = source


# =============================================================================
# Lifecycle Exceptions
# =============================================================================


class LifecycleError(KeeperError):
    """Base exception for lifecycle controller errors."""


class PatchVersionError(LifecycleError, ValueError):
    """Raised when a patch verdict does not name a version to install.

    Attributes:
        version: The rejected version value.
    """

    def __init__(self, message: str, *, version: str | None = None) -> None:
        super().__init__(message)
        self.version: str | None = version


# =============================================================================
# Update Exceptions
# =============================================================================


class UpdateError(KeeperError):
    """Base exception for update checking and patching errors."""


class UpdateCheckError(UpdateError):
    """Raised when the latest published version cannot be determined.

    Attributes:
        url: The metadata URL that was queried.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.url: str | None = url
        self.cause: Exception | None = cause


class PatchError(UpdateError):
    """Raised when an update cannot be downloaded or applied.

    Attributes:
        version: The version that was being applied.
        path: The archive or directory involved, if any.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        version: str | None = None,
        path: Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.version: str | None = version
        self.path: Path | None = path
        self.cause: Exception | None = cause


# =============================================================================
# Host Exceptions
# =============================================================================


class BackupError(KeeperError):
    """Raised when a backup archive cannot be created.

    Attributes:
        path: The backup archive path.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.path: Path | None = path
        self.cause: Exception | None = cause


class PreflightError(KeeperError):
    """Raised when required ports are still in use before startup.

    Attributes:
        ports: The ports found in use.
    """

    def __init__(self, message: str, *, ports: tuple[int, ...] = ()) -> None:
        super().__init__(message)
        self.ports: tuple[int, ...] = ports
