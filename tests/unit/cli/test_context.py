import structlog

from serverkeeper.cli import CLIContext
from serverkeeper.config import Config


class TestCLIContext:
    def test_default_context_has_default_config(self) -> None:
        CLIContext.reset()

        ctx = CLIContext.get_current()

        assert ctx.config_path is None
        assert ctx.config.server.enable_auto_start is True
        assert ctx.logger is None

    def test_set_and_reset(self) -> None:
        ctx = CLIContext(
            config=Config.from_dict({"server": {"executable_name": "bds"}}),
            logger=structlog.get_logger(),
        )

        CLIContext.set_current(ctx)
        assert CLIContext.get_current() is ctx

        CLIContext.reset()
        assert CLIContext.get_current() is not ctx
