"""Async runner for the run command.

This module wires the configured collaborators into a LifecycleController
and runs it under anyio until SIGINT or SIGTERM arrives.
"""

import contextlib
import signal
from collections.abc import AsyncIterable

import anyio
import structlog
from structlog.typing import FilteringBoundLogger

from serverkeeper.config import Config
from serverkeeper.lifecycle import (
    LifecycleController,
    ModeOverrideProvider,
    ProcessManager,
    StatusDecisionEngine,
    SystemClock,
)
from serverkeeper.server import PreflightCheck, ServerProcess
from serverkeeper.updates import (
    PatchService,
    UpdateChecker,
    VersionClient,
    ZipBackupService,
)


def build_controller(
    config: Config,
    process: ProcessManager,
    logger: FilteringBoundLogger,
) -> LifecycleController:
    """Assemble the controller and its collaborators for a process.

    Args:
        config: Loaded configuration.
        process: The process to supervise.
        logger: Logger passed to every component.

    Returns:
        A controller ready to run.
    """
    clock = SystemClock()
    versions = VersionClient(config.updates, logger=logger)
    engine = StatusDecisionEngine(
        config.server,
        UpdateChecker(versions, logger=logger),
        process=process,
        clock=clock,
        logger=logger,
    )
    return LifecycleController(
        config.server,
        ModeOverrideProvider(engine, logger=logger),
        process,
        ZipBackupService(config.server, config.updates, clock=clock, logger=logger),
        PatchService(config.server, config.updates, versions, logger=logger),
        preflight=PreflightCheck(config.server, logger=logger),
        logger=logger,
    )


async def _stop_on_signal(
    controller: LifecycleController,
    cancel_scope: anyio.CancelScope,
    logger: FilteringBoundLogger,
    signals: AsyncIterable[int],
) -> None:
    """Stop the server and cancel the loop on the first signal."""
    async for signum in signals:
        logger.info("shutdown_signal_received", signal=signal.Signals(signum).name)
        with anyio.CancelScope(shield=True):
            await controller.stop()
        cancel_scope.cancel()
        return


async def supervise(
    controller: LifecycleController,
    logger: FilteringBoundLogger,
    signals: AsyncIterable[int] | None = None,
) -> None:
    """Run the controller until the first shutdown signal.

    Args:
        controller: Controller to run.
        logger: Logger for shutdown events.
        signals: Signal numbers to react to; SIGINT and SIGTERM delivered to
            this process when None.

    Raises:
        PreflightError: If the server's ports are held by another process.
    """
    with contextlib.ExitStack() as stack:
        if signals is None:
            signals = stack.enter_context(
                anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM)
            )
        async with anyio.create_task_group() as tg:
            tg.start_soon(_stop_on_signal, controller, tg.cancel_scope, logger, signals)
            await controller.run()


async def run_keeper(
    config: Config,
    logger: FilteringBoundLogger | None = None,
) -> None:
    """Supervise the configured server until a shutdown signal arrives.

    Raises:
        PreflightError: If the server's ports are held by another process.
    """
    log: FilteringBoundLogger = logger or structlog.get_logger()
    async with ServerProcess(config.server, logger=log) as process:
        await supervise(build_controller(config, process, log), log)
