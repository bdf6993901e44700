# pyright: reportAny=false, reportExplicitAny=false, reportUnknownArgumentType=false, reportUnknownMemberType=false, reportUnknownParameterType=false, reportUnknownVariableType=false
"""Validation of merged configuration values and of the server installation.

validate_config checks the merged dict against the section models and turns
pydantic errors into ValidationIssue records. Checks that need the
filesystem live in validate_installation, so the models themselves can be
built for any directory.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic_core import ErrorDetails

from serverkeeper.config._models._logging import LoggingConfig
from serverkeeper.config._models._server import ServerOptions
from serverkeeper.config._models._updates import UpdateOptions
from serverkeeper.exceptions import ConfigValidationError

SECTIONS: dict[str, type[BaseModel]] = {
    "server": ServerOptions,
    "updates": UpdateOptions,
    "logging": LoggingConfig,
}


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """A problem found in the configuration.

    Attributes:
        key: Dotted path of the offending key (e.g. ``server.server_path``).
        message: What is wrong.
        expected: What would have been accepted, if known.
        actual: The rejected value.
        source: File the value came from, or None for merged values.
        severity: Errors fail validation; warnings are only reported.
    """

    key: str
    message: str
    expected: str | None
    actual: Any
    source: str | None
    severity: Literal["error", "warning"]

    def __str__(self) -> str:
        return f"{self.key}: {self.message}"


class _Sections(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore")

    server: ServerOptions = ServerOptions()
    updates: UpdateOptions = UpdateOptions()
    logging: LoggingConfig = LoggingConfig()


def _expected(error: ErrorDetails) -> str | None:
    ctx = error.get("ctx") or {}
    for bound, symbol in (("gt", ">"), ("ge", ">="), ("lt", "<"), ("le", "<=")):
        if bound in ctx:
            return f"{symbol} {ctx[bound]}"
    if "expected" in ctx:
        return str(ctx["expected"])
    return None


def _issues_from(error: ValidationError) -> Iterator[ValidationIssue]:
    for detail in error.errors():
        yield ValidationIssue(
            key=".".join(str(part) for part in detail["loc"]),
            message=detail["msg"],
            expected=_expected(detail),
            actual=detail.get("input"),
            source=None,
            severity="error",
        )


def _unknown_keys(config: Mapping[str, Any]) -> Iterator[ValidationIssue]:
    for section, values in config.items():
        model = SECTIONS.get(section)
        if model is None:
            yield ValidationIssue(
                key=section,
                message="Unknown configuration section",
                expected=", ".join(SECTIONS),
                actual=values,
                source=None,
                severity="error",
            )
            continue
        if not isinstance(values, Mapping):
            continue
        for key in values:
            if key not in model.model_fields:
                yield ValidationIssue(
                    key=f"{section}.{key}",
                    message="Unknown configuration key",
                    expected=None,
                    actual=values[key],
                    source=None,
                    severity="error",
                )


def validate_config(config: Mapping[str, Any], *, strict: bool = False) -> list[ValidationIssue]:
    """Check merged configuration values.

    Args:
        config: Merged configuration dict.
        strict: Also report sections and keys serverkeeper does not know.

    Returns:
        Every issue found; an empty list means the values are valid.
    """
    issues: list[ValidationIssue] = []
    try:
        _ = _Sections.model_validate(config)
    except ValidationError as e:
        issues.extend(_issues_from(e))
    if strict:
        issues.extend(_unknown_keys(config))
    return issues


def _missing(key: str, message: str, expected: str, actual: str) -> ValidationIssue:
    return ValidationIssue(key, message, expected, actual, None, "error")


def validate_installation(options: ServerOptions) -> list[ValidationIssue]:
    """Check that the configured server installation exists on disk."""
    if not options.server_path.is_dir():
        return [
            _missing(
                "server.server_path",
                "Server directory does not exist",
                "an existing directory",
                str(options.server_path),
            )
        ]
    if not options.executable_name:
        return [
            _missing(
                "server.executable_name",
                "Executable name is required",
                "a file name inside server_path",
                options.executable_name,
            )
        ]
    if not options.executable_path.is_file():
        return [
            _missing(
                "server.executable_name",
                "Server executable does not exist",
                "an existing file",
                str(options.executable_path),
            )
        ]
    return []


def raise_if_validation_errors(
    issues: list[ValidationIssue],
    source: str | None = None,
) -> None:
    """Raise for the first error, carrying every error in ``problems``.

    Warnings never raise.

    Raises:
        ConfigValidationError: If any issue has severity "error".
    """
    errors = [issue for issue in issues if issue.severity == "error"]
    if not errors:
        return
    first = errors[0]
    msg = f"Invalid configuration value for '{first.key}': {first.message}"
    raise ConfigValidationError(
        msg,
        key=first.key,
        value=first.actual,
        expected=first.expected or first.message,
        problems=tuple(str(issue) for issue in errors),
        source=source or first.source,
    )
