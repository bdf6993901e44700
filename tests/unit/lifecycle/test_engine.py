from datetime import UTC, datetime, timedelta

import pytest

from serverkeeper.config import ServerOptions
from serverkeeper.lifecycle import (
    FakeClock,
    FakeProcessManager,
    FakeUpdateOracle,
    Idle,
    Monitored,
    Patched,
    RuntimeSnapshot,
    Started,
    StatusDecisionEngine,
    Stopped,
    StopReason,
    UpdateCheckResult,
)

NOW = datetime(2024, 1, 1, 12, tzinfo=UTC)
UPDATE = UpdateCheckResult(available=True, message="newer", new_version="1.0.1")


def _options(**overrides: object) -> ServerOptions:
    return ServerOptions.model_validate(overrides)


def _running(uptime_seconds: float = 60, version: str = "1.0.0") -> RuntimeSnapshot:
    return RuntimeSnapshot(
        is_running=True,
        start_time=NOW - timedelta(seconds=uptime_seconds),
        current_version=version,
    )


STOPPED = RuntimeSnapshot(is_running=False, current_version="1.0.0")


@pytest.mark.anyio
class TestStartAndIdle:
    async def test_idle_when_auto_start_disabled(self) -> None:
        engine = StatusDecisionEngine(
            _options(enable_auto_start=False), FakeUpdateOracle()
        )

        assert await engine.determine_status(STOPPED, NOW) == Idle()

    async def test_started_when_auto_start_enabled(self) -> None:
        engine = StatusDecisionEngine(_options(enable_auto_start=True), FakeUpdateOracle())

        assert await engine.determine_status(STOPPED, NOW) == Started()

    async def test_monitored_when_running_and_nothing_due(self) -> None:
        engine = StatusDecisionEngine(_options(), FakeUpdateOracle())

        assert await engine.determine_status(_running(), NOW) == Monitored()

    async def test_oracle_not_queried_when_checks_disabled(self) -> None:
        oracle = FakeUpdateOracle(result=UPDATE)
        engine = StatusDecisionEngine(_options(check_for_updates=False), oracle)

        assert await engine.determine_status(_running(), NOW) == Monitored()
        assert await engine.determine_status(STOPPED, NOW) == Started()
        assert oracle.calls == []


@pytest.mark.anyio
class TestAutoShutdown:
    async def test_stops_once_limit_reached(self) -> None:
        engine = StatusDecisionEngine(
            _options(auto_shutdown_after_seconds=3600), FakeUpdateOracle()
        )

        status = await engine.determine_status(_running(uptime_seconds=3600), NOW)

        assert status == Stopped()
        assert isinstance(status, Stopped)
        assert status.reason == StopReason.AUTO_SHUTDOWN

    async def test_keeps_monitoring_before_limit(self) -> None:
        engine = StatusDecisionEngine(
            _options(auto_shutdown_after_seconds=3600), FakeUpdateOracle()
        )

        status = await engine.determine_status(_running(uptime_seconds=3599), NOW)

        assert status == Monitored()

    @pytest.mark.parametrize("limit", [0, -1, -3600])
    async def test_non_positive_limit_disables_auto_shutdown(self, limit: int) -> None:
        engine = StatusDecisionEngine(
            _options(auto_shutdown_after_seconds=limit), FakeUpdateOracle()
        )

        assert await engine.determine_status(_running(uptime_seconds=10**7), NOW) == Monitored()
        assert await engine.determine_status(
            RuntimeSnapshot(is_running=True, start_time=None), NOW
        ) == Monitored()

    async def test_never_started_process_counts_as_infinite_uptime(self) -> None:
        engine = StatusDecisionEngine(
            _options(auto_shutdown_after_seconds=10), FakeUpdateOracle()
        )
        snapshot = RuntimeSnapshot(is_running=True, start_time=None)

        status = await engine.determine_status(snapshot, NOW)

        assert isinstance(status, Stopped)
        assert status.reason == StopReason.AUTO_SHUTDOWN

    async def test_takes_priority_over_update(self) -> None:
        oracle = FakeUpdateOracle(result=UPDATE)
        engine = StatusDecisionEngine(
            _options(auto_shutdown_after_seconds=60, check_for_updates=True), oracle
        )

        status = await engine.determine_status(_running(uptime_seconds=120), NOW)

        assert isinstance(status, Stopped)
        assert status.reason == StopReason.AUTO_SHUTDOWN
        assert oracle.calls == []


@pytest.mark.anyio
class TestUpdateFlow:
    async def test_stop_then_patch(self) -> None:
        oracle = FakeUpdateOracle(result=UPDATE)
        engine = StatusDecisionEngine(_options(check_for_updates=True), oracle)

        first = await engine.determine_status(_running(), NOW)
        second = await engine.determine_status(STOPPED, NOW)

        assert isinstance(first, Stopped)
        assert first.reason == StopReason.UPDATE
        assert second == Patched("1.0.1")
        assert oracle.calls == ["1.0.0", "1.0.0"]

    async def test_up_to_date_running_server_records_check_time(self) -> None:
        engine = StatusDecisionEngine(_options(check_for_updates=True), FakeUpdateOracle())

        status = await engine.determine_status(_running(), NOW)

        assert status == Monitored()
        assert engine.last_update_check_time == NOW

    async def test_stop_for_update_does_not_record_check_time(self) -> None:
        engine = StatusDecisionEngine(
            _options(check_for_updates=True), FakeUpdateOracle(result=UPDATE)
        )

        _ = await engine.determine_status(_running(), NOW)

        assert engine.last_update_check_time is None

    async def test_checks_are_throttled(self) -> None:
        oracle = FakeUpdateOracle()
        engine = StatusDecisionEngine(
            _options(check_for_updates=True, update_check_interval_seconds=600), oracle
        )

        _ = await engine.determine_status(_running(), NOW)
        _ = await engine.determine_status(_running(), NOW + timedelta(seconds=599))
        assert len(oracle.calls) == 1

        _ = await engine.determine_status(_running(), NOW + timedelta(seconds=600))
        assert len(oracle.calls) == 2

    async def test_zero_interval_disables_update_checks(self) -> None:
        oracle = FakeUpdateOracle(result=UPDATE)
        engine = StatusDecisionEngine(
            _options(check_for_updates=True, update_check_interval_seconds=0), oracle
        )

        running = [await engine.determine_status(_running(), NOW) for _ in range(3)]
        stopped = await engine.determine_status(STOPPED, NOW)

        assert running == [Monitored()] * 3
        assert stopped == Started()
        assert oracle.calls == []
        assert engine.last_update_check_time is None

    async def test_stopped_server_check_time_recorded_before_query(self) -> None:
        oracle = FakeUpdateOracle(error=RuntimeError("network down"))
        engine = StatusDecisionEngine(_options(check_for_updates=True), oracle)

        status = await engine.determine_status(STOPPED, NOW)

        assert status == Started()
        assert engine.last_update_check_time == NOW

    async def test_stopped_server_up_to_date_is_started(self) -> None:
        engine = StatusDecisionEngine(_options(check_for_updates=True), FakeUpdateOracle())

        assert await engine.determine_status(STOPPED, NOW) == Started()

    async def test_stopped_server_patched_even_without_auto_start(self) -> None:
        engine = StatusDecisionEngine(
            _options(check_for_updates=True, enable_auto_start=False),
            FakeUpdateOracle(result=UPDATE),
        )

        assert await engine.determine_status(STOPPED, NOW) == Patched("1.0.1")

    async def test_update_deferred_until_minimum_uptime(self) -> None:
        oracle = FakeUpdateOracle(result=UPDATE)
        engine = StatusDecisionEngine(
            _options(check_for_updates=True, minimum_server_uptime_for_update_seconds=300),
            oracle,
        )

        early = await engine.determine_status(_running(uptime_seconds=100), NOW)
        later = await engine.determine_status(_running(uptime_seconds=300), NOW)

        assert early == Monitored()
        assert engine.last_update_check_time is None
        assert isinstance(later, Stopped)
        assert later.reason == StopReason.UPDATE

    async def test_update_not_applied_to_process_without_start_time(self) -> None:
        engine = StatusDecisionEngine(
            _options(check_for_updates=True), FakeUpdateOracle(result=UPDATE)
        )
        snapshot = RuntimeSnapshot(is_running=True, start_time=None)

        assert await engine.determine_status(snapshot, NOW) == Monitored()

    async def test_oracle_failure_means_no_update(self) -> None:
        oracle = FakeUpdateOracle(error=ConnectionError("unreachable"))
        engine = StatusDecisionEngine(_options(check_for_updates=True), oracle)

        status = await engine.determine_status(_running(), NOW)

        assert status == Monitored()
        assert engine.last_update_check_time is None

    async def test_available_without_version_is_ignored(self) -> None:
        oracle = FakeUpdateOracle(
            result=UpdateCheckResult(available=True, message="newer", new_version="")
        )
        engine = StatusDecisionEngine(_options(check_for_updates=True), oracle)

        assert await engine.determine_status(_running(), NOW) == Monitored()
        assert await engine.determine_status(STOPPED, NOW) == Started()

    async def test_passes_current_version_to_oracle(self) -> None:
        oracle = FakeUpdateOracle()
        engine = StatusDecisionEngine(_options(check_for_updates=True), oracle)

        _ = await engine.determine_status(_running(version="1.20.0.1"), NOW)

        assert oracle.calls == ["1.20.0.1"]


@pytest.mark.anyio
class TestEvaluate:
    async def test_uses_attached_process_and_clock(self) -> None:
        clock = FakeClock()
        process = FakeProcessManager(clock=clock)
        engine = StatusDecisionEngine(
            _options(auto_shutdown_after_seconds=60),
            FakeUpdateOracle(),
            process=process,
            clock=clock,
        )

        assert await engine.evaluate() == Started()

        _ = await process.start()
        assert await engine.evaluate() == Monitored()

        _ = clock.advance(60)
        assert await engine.evaluate() == Stopped()

    async def test_requires_clock(self) -> None:
        engine = StatusDecisionEngine(
            _options(), FakeUpdateOracle(), process=FakeProcessManager()
        )

        with pytest.raises(RuntimeError, match="clock"):
            _ = await engine.evaluate()


class TestSnapshot:
    def test_requires_process(self) -> None:
        engine = StatusDecisionEngine(_options(), FakeUpdateOracle())

        with pytest.raises(RuntimeError, match="process"):
            _ = engine.snapshot()

    def test_reflects_process(self) -> None:
        started = datetime(2024, 1, 1, tzinfo=UTC)
        process = FakeProcessManager(running=True, started_at=started, version="1.2.3.4")
        engine = StatusDecisionEngine(_options(), FakeUpdateOracle(), process=process)

        assert engine.snapshot() == RuntimeSnapshot(
            is_running=True, start_time=started, current_version="1.2.3.4"
        )
