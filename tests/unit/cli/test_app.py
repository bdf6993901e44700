from collections.abc import Callable
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from serverkeeper.cli import parse_overrides
from serverkeeper.cli._shared import ExitCode
from serverkeeper.exceptions import BackupError, PreflightError, UpdateCheckError
from serverkeeper.lifecycle import UpdateCheckResult

type KeeperCli = Callable[..., int]


class TestParseOverrides:
    def test_none_when_empty(self) -> None:
        assert parse_overrides(None) is None
        assert parse_overrides([]) is None

    def test_builds_nested_typed_dict(self) -> None:
        result = parse_overrides(
            [
                "server.enable_auto_start=false",
                "server.auto_shutdown_after_seconds=3600",
                "server.server_ports=[19132]",
                "updates.download_type = serverBedrockWindows",
            ]
        )

        assert result == {
            "server": {
                "enable_auto_start": False,
                "auto_shutdown_after_seconds": 3600,
                "server_ports": [19132],
            },
            "updates": {"download_type": "serverBedrockWindows"},
        }

    @pytest.mark.parametrize("assignment", ["server.enable_auto_start", "=true"])
    def test_rejects_malformed_assignment(self, assignment: str) -> None:
        with pytest.raises(ValueError, match="Expected key=value"):
            _ = parse_overrides([assignment])


class TestConfigShow:
    def test_prints_effective_values(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = keeper_cli_with_exit_code("--config", str(config_file), "config", "show")

        out = capsys.readouterr().out
        assert code == ExitCode.SUCCESS
        assert "Effective configuration" in out
        assert "server.auto_shutdown_after_seconds" in out
        assert "3600" in out

    def test_set_overrides_file(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = keeper_cli_with_exit_code(
            "--config",
            str(config_file),
            "--set",
            "server.executable_name=custom_exe",
            "config",
            "show",
        )

        assert code == ExitCode.SUCCESS
        assert "custom_exe" in capsys.readouterr().out

    def test_changed_lists_only_non_default_values(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = keeper_cli_with_exit_code(
            "--config", str(config_file), "config", "show", "--changed"
        )

        out = capsys.readouterr().out
        assert code == ExitCode.SUCCESS
        assert "server.auto_shutdown_after_seconds" in out
        assert "server.monitoring_interval_seconds" not in out

    def test_malformed_set_exits_with_load_error(
        self, keeper_cli_with_exit_code: KeeperCli, config_file: Path
    ) -> None:
        code = keeper_cli_with_exit_code(
            "--config", str(config_file), "--set", "oops", "config", "show"
        )

        assert code == ExitCode.LOAD_ERROR


class TestConfigValidate:
    def test_valid_configuration(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = keeper_cli_with_exit_code("--config", str(config_file), "config", "validate")

        assert code == ExitCode.SUCCESS
        assert "Configuration is valid" in capsys.readouterr().out

    def test_invalid_value_lists_problems(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = keeper_cli_with_exit_code(
            "--config",
            str(config_file),
            "--set",
            "server.monitoring_interval_seconds=0",
            "config",
            "validate",
        )

        assert code == ExitCode.VALIDATION_ERROR
        assert "server.monitoring_interval_seconds" in capsys.readouterr().err

    def test_missing_executable_is_reported(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = keeper_cli_with_exit_code(
            "--config",
            str(config_file),
            "--set",
            "server.executable_name=missing_exe",
            "config",
            "validate",
        )

        assert code == ExitCode.VALIDATION_ERROR
        assert "Server executable does not exist" in capsys.readouterr().err

    def test_strict_rejects_unknown_key(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        args = ("--config", str(config_file), "--set", "server.colour=blue", "config", "validate")

        assert keeper_cli_with_exit_code(*args) == ExitCode.SUCCESS
        assert keeper_cli_with_exit_code(*args, "--strict") == ExitCode.VALIDATION_ERROR
        assert "server.colour: Unknown configuration key" in capsys.readouterr().err

    def test_missing_config_file_exits(
        self, keeper_cli_with_exit_code: KeeperCli, tmp_path: Path
    ) -> None:
        code = keeper_cli_with_exit_code(
            "--config", str(tmp_path / "absent.toml"), "config", "validate"
        )

        assert code == 1


class TestRunCommand:
    def test_runs_keeper_with_loaded_config(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        server_dir: Path,
        mocker: MockerFixture,
    ) -> None:
        run_keeper = mocker.patch("serverkeeper.cli._app.run_keeper", new=mocker.AsyncMock())

        code = keeper_cli_with_exit_code("--config", str(config_file), "run")

        assert code == ExitCode.SUCCESS
        run_keeper.assert_awaited_once()
        config = run_keeper.await_args.args[0]
        assert config.server.server_path == server_dir

    def test_invalid_installation_is_not_run(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        mocker: MockerFixture,
    ) -> None:
        run_keeper = mocker.patch("serverkeeper.cli._app.run_keeper", new=mocker.AsyncMock())

        code = keeper_cli_with_exit_code(
            "--config", str(config_file), "--set", "server.server_path=/nonexistent", "run"
        )

        assert code == ExitCode.VALIDATION_ERROR
        run_keeper.assert_not_awaited()

    def test_preflight_failure_exits_with_preflight_error(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        mocker: MockerFixture,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        _ = mocker.patch(
            "serverkeeper.cli._app.run_keeper",
            new=mocker.AsyncMock(
                side_effect=PreflightError("Required ports 19132 are in use", ports=(19132,))
            ),
        )

        code = keeper_cli_with_exit_code("--config", str(config_file), "run")

        assert code == ExitCode.PREFLIGHT_ERROR
        assert "19132" in capsys.readouterr().err

    def test_unexpected_error_exits_with_internal_error(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        mocker: MockerFixture,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        _ = mocker.patch(
            "serverkeeper.cli._app.run_keeper",
            new=mocker.AsyncMock(
                side_effect=ExceptionGroup("keeper", [RuntimeError("output pump died")])
            ),
        )

        code = keeper_cli_with_exit_code("--config", str(config_file), "run")

        assert code == ExitCode.INTERNAL_ERROR
        assert "output pump died" in capsys.readouterr().err


class TestCheckUpdate:
    def test_reports_available_update(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        mocker: MockerFixture,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        check = mocker.patch(
            "serverkeeper.cli._app.UpdateChecker.check_for_newer_version",
            new=mocker.AsyncMock(
                return_value=UpdateCheckResult(
                    available=True,
                    message="Update available: 1.0.0 -> 1.0.1",
                    new_version="1.0.1",
                )
            ),
        )

        code = keeper_cli_with_exit_code(
            "--config", str(config_file), "check-update", "--current-version", "1.0.0"
        )

        assert code == ExitCode.SUCCESS
        check.assert_awaited_once_with("1.0.0")
        assert "1.0.0 -> 1.0.1" in capsys.readouterr().out

    def test_lookup_failure_exits_with_update_error(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        mocker: MockerFixture,
    ) -> None:
        _ = mocker.patch(
            "serverkeeper.cli._app.UpdateChecker.check_for_newer_version",
            new=mocker.AsyncMock(side_effect=UpdateCheckError("offline")),
        )

        code = keeper_cli_with_exit_code("--config", str(config_file), "check-update")

        assert code == ExitCode.UPDATE_ERROR


class TestBackupCommand:
    def test_writes_backup(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = keeper_cli_with_exit_code("--config", str(config_file), "backup")

        assert code == ExitCode.SUCCESS
        archives = list((tmp_path / "backups").glob("server_backup_*.zip"))
        assert len(archives) == 1
        assert "Backup written to" in capsys.readouterr().out

    def test_backup_failure_exits_with_io_error(
        self,
        keeper_cli_with_exit_code: KeeperCli,
        config_file: Path,
        mocker: MockerFixture,
    ) -> None:
        _ = mocker.patch(
            "serverkeeper.cli._app.ZipBackupService.create_backup",
            new=mocker.AsyncMock(side_effect=BackupError("disk full")),
        )

        code = keeper_cli_with_exit_code("--config", str(config_file), "backup")

        assert code == ExitCode.IO_ERROR
