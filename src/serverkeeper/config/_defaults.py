"""Default configuration values.

This module defines the built-in default configuration values that are used
when no other configuration sources provide values.

Note: DEFAULT_CONFIG is a plain dict for type compatibility with deep_merge,
which always returns copies.
"""

from typing import Any

DEFAULT_CONFIG_FILE_NAME = "serverkeeper.toml"

ENV_PREFIX = "SERVERKEEPER_"

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "logging": {
        "level": "info",
        "format": "json",
        "file": "",
    },
    "server": {
        "graceful_shutdown_command": "stop",
        "enable_auto_start": True,
        "auto_shutdown_after_seconds": 0,
        "monitoring_interval_seconds": 5.0,
        "check_for_updates": False,
        "update_check_interval_seconds": 86400,
        "minimum_server_uptime_for_update_seconds": 0,
    },
    "updates": {
        "backup_folder": "backups",
        "backup_exclude": ["worlds", "logs", "backups"],
    },
}
