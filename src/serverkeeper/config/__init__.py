"""serverkeeper configuration.

This module provides the public API for serverkeeper configuration
management, including loading, validation, and typed access to
configuration values.

Example:
    >>> from serverkeeper.config import Config
    >>> config = Config.load()
    >>> config.server.monitoring_interval_seconds
    5.0
"""

from serverkeeper.exceptions import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
)

from ._defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_FILE_NAME, ENV_PREFIX
from ._load import safe_load_config
from ._loader import (
    deep_merge,
    merge_layers,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    Config,
    ConfigSource,
    ConfigSourceName,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ServerOptions,
    UpdateOptions,
)
from ._validation import (
    ValidationIssue,
    raise_if_validation_errors,
    validate_config,
    validate_installation,
)

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE_NAME",
    "ENV_PREFIX",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigSource",
    "ConfigSourceName",
    "ConfigValidationError",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ServerOptions",
    "UpdateOptions",
    "ValidationIssue",
    "deep_merge",
    "merge_layers",
    "parse_env_vars",
    "parse_string_value",
    "raise_if_validation_errors",
    "read_toml_file",
    "safe_load_config",
    "set_nested_key",
    "validate_config",
    "validate_installation",
]
