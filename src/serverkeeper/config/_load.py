"""Configuration loading for the CLI entrypoint.

Logging is configured from the loaded values, so nothing here can use a
logger; problems go straight to stderr.
"""

import os
import sys
from pathlib import Path
from typing import NoReturn

from serverkeeper.exceptions import ConfigError

from ._defaults import ENV_PREFIX
from ._models import Config

STRICT_ENV_VAR = f"{ENV_PREFIX}STRICT_CONFIG"


def _abort(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)  # noqa: T201
    sys.exit(1)


def safe_load_config(
    *,
    config_path: Path | None = None,
    cli_overrides: dict[str, object] | None = None,
) -> tuple[Config, str | None]:
    """Load the configuration, degrading to defaults when it is broken.

    An explicit ``config_path`` that does not exist always exits with status
    1. Any other load or validation failure is reported as a warning and the
    built-in defaults are returned together with the message, unless
    ``SERVERKEEPER_STRICT_CONFIG=1`` is set, in which case it exits too.

    Returns:
        The configuration and None, or the default configuration and the
        reason loading failed.
    """
    if config_path is not None and not config_path.exists():
        _abort(f"Config file not found: {config_path}")

    try:
        return Config.load(config_path=config_path, cli_overrides=cli_overrides), None
    except ConfigError as e:
        problem = str(e)
    except OSError as e:
        problem = f"Failed to load config: {e}"

    if os.environ.get(STRICT_ENV_VAR) == "1":
        _abort(problem)
    print(f"Warning: {problem}", file=sys.stderr)  # noqa: T201
    return Config.from_dict({}), problem
