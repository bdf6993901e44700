from pathlib import Path

import pytest

from serverkeeper.config import (
    ServerOptions,
    ValidationIssue,
    raise_if_validation_errors,
    validate_config,
    validate_installation,
)
from serverkeeper.exceptions import ConfigValidationError


class TestValidateConfig:
    def test_valid_config_has_no_issues(self) -> None:
        assert validate_config({"server": {"executable_name": "bds"}}) == []

    def test_reports_bounds(self) -> None:
        issues = validate_config({"server": {"stop_timeout_seconds": 2}})

        assert len(issues) == 1
        assert issues[0].key == "server.stop_timeout_seconds"
        assert issues[0].expected == ">= 5"
        assert issues[0].actual == 2

    def test_lenient_mode_ignores_unknown_keys(self) -> None:
        assert validate_config({"server": {"colour": "blue"}, "extra": {}}) == []

    def test_strict_mode_rejects_unknown_keys(self) -> None:
        issues = validate_config({"server": {"colour": "blue"}}, strict=True)

        assert [i.key for i in issues] == ["server.colour"]

    def test_strict_mode_rejects_unknown_sections(self) -> None:
        issues = validate_config({"plugins": {"x": 1}}, strict=True)

        assert [i.key for i in issues] == ["plugins"]
        assert issues[0].message == "Unknown configuration section"

    def test_issue_renders_as_key_and_message(self) -> None:
        issues = validate_config({"logging": {"level": "loud"}})

        assert str(issues[0]).startswith("logging.level: ")


class TestRaiseIfValidationErrors:
    def test_no_errors_does_nothing(self) -> None:
        warning = ValidationIssue(
            key="server.x",
            message="odd",
            expected=None,
            actual=1,
            source=None,
            severity="warning",
        )

        raise_if_validation_errors([warning])

    def test_raises_for_first_error_with_all_problems(self) -> None:
        issues = [
            ValidationIssue("a.b", "too small", ">= 1", 0, "file.toml", "error"),
            ValidationIssue("c.d", "bad type", None, "x", None, "error"),
        ]

        with pytest.raises(ConfigValidationError) as exc_info:
            raise_if_validation_errors(issues)

        error = exc_info.value
        assert error.key == "a.b"
        assert error.expected == ">= 1"
        assert error.source == "file.toml"
        assert error.problems == ("a.b: too small", "c.d: bad type")
        assert "Invalid configuration value for 'a.b'" in str(error)


class TestValidateInstallation:
    def test_valid_installation(self, server_options: ServerOptions) -> None:
        assert validate_installation(server_options) == []

    def test_missing_directory(self, tmp_path: Path) -> None:
        options = ServerOptions(server_path=tmp_path / "absent", executable_name="bds")

        issues = validate_installation(options)

        assert [i.key for i in issues] == ["server.server_path"]

    def test_missing_executable_name(self, server_dir: Path) -> None:
        issues = validate_installation(ServerOptions(server_path=server_dir))

        assert [i.key for i in issues] == ["server.executable_name"]
        assert issues[0].message == "Executable name is required"

    def test_missing_executable(self, server_dir: Path) -> None:
        options = ServerOptions(server_path=server_dir, executable_name="nope")

        issues = validate_installation(options)

        assert [i.key for i in issues] == ["server.executable_name"]
        assert issues[0].actual == str(server_dir / "nope")


