# pyright: reportExplicitAny=false, reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""The merged serverkeeper configuration.

Config is the single object the CLI hands to every component. It keeps the
merged raw dict (for ``config show`` and dotted lookups), the sources that
produced it, and one validated options model per section.
"""

from pathlib import Path
from typing import Any, ClassVar, Self, TypeVar, overload

from pydantic import BaseModel, ConfigDict, PrivateAttr

from serverkeeper.config._defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_FILE_NAME
from serverkeeper.config._loader import (
    copy_value,
    deep_merge,
    merge_layers,
    parse_env_vars,
    read_toml_file,
)
from serverkeeper.config._models._common import ConfigSource, ConfigSourceName
from serverkeeper.config._models._logging import LoggingConfig
from serverkeeper.config._models._server import ServerOptions
from serverkeeper.config._models._updates import UpdateOptions

T = TypeVar("T")

_MISSING = object()


def _discover_sources(
    *,
    config_path: Path | None,
    include_env: bool,
    cli_overrides: dict[str, Any] | None,
) -> list[ConfigSource]:
    """Return configuration sources in highest-to-lowest precedence order."""
    sources: list[ConfigSource] = []

    if cli_overrides:
        sources.append(ConfigSource(ConfigSourceName.CLI, None, True, cli_overrides))

    if include_env:
        env_values = parse_env_vars()
        sources.append(ConfigSource(ConfigSourceName.ENV, None, bool(env_values), env_values))

    path = config_path if config_path is not None else Path(DEFAULT_CONFIG_FILE_NAME)
    exists = path.is_file()
    file_values = read_toml_file(path) if exists else {}
    sources.append(ConfigSource(ConfigSourceName.FILE, path, exists, file_values))

    sources.append(
        ConfigSource(ConfigSourceName.DEFAULT, None, True, copy_value(DEFAULT_CONFIG))
    )
    return sources


class Config(BaseModel):
    """Merged, validated serverkeeper configuration.

    Build instances with from_dict(), from_file() or load(); the section
    properties (server, updates, logging) are validated pydantic models.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    _data: dict[str, Any] = PrivateAttr(default_factory=dict)
    _sources: tuple[ConfigSource, ...] = PrivateAttr(default=())
    _server: ServerOptions = PrivateAttr(default_factory=ServerOptions)
    _updates: UpdateOptions = PrivateAttr(default_factory=UpdateOptions)
    _logging: LoggingConfig = PrivateAttr(default_factory=LoggingConfig)

    def __init__(
        self,
        *,
        _data: dict[str, Any] | None = None,
        _sources: tuple[ConfigSource, ...] = (),
        _server: ServerOptions | None = None,
        _updates: UpdateOptions | None = None,
        _logging: LoggingConfig | None = None,
    ) -> None:
        super().__init__()
        self._data = _data if _data is not None else {}
        self._sources = _sources
        self._server = _server if _server is not None else ServerOptions()
        self._updates = _updates if _updates is not None else UpdateOptions()
        self._logging = _logging if _logging is not None else LoggingConfig()

    @classmethod
    def _build(
        cls,
        merged: dict[str, Any],
        sources: tuple[ConfigSource, ...],
        *,
        validate: bool,
        source: str | None = None,
    ) -> Self:
        # Deferred import to avoid circular dependency
        from serverkeeper.config._validation import (  # noqa: PLC0415
            raise_if_validation_errors,
            validate_config,
        )

        if validate:
            raise_if_validation_errors(validate_config(merged), source=source)

        return cls(
            _data=merged,
            _sources=sources,
            _server=ServerOptions.model_validate(merged.get("server", {})),
            _updates=UpdateOptions.model_validate(merged.get("updates", {})),
            _logging=LoggingConfig.model_validate(merged.get("logging", {})),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, validate: bool = True) -> Self:
        """Build a configuration from values layered over the defaults.

        Raises:
            ConfigValidationError: If ``validate`` is set and a value is invalid.
        """
        return cls._build(deep_merge(DEFAULT_CONFIG, data), (), validate=validate)

    @classmethod
    def from_file(cls, path: Path, *, validate: bool = True) -> Self:
        """Build a configuration from one TOML file layered over the defaults.

        Environment variables are not consulted.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file is not valid TOML.
            ConfigValidationError: If ``validate`` is set and a value is invalid.
        """
        data = read_toml_file(path)
        source = ConfigSource(ConfigSourceName.FILE, path, True, data)
        return cls._build(
            deep_merge(DEFAULT_CONFIG, data),
            (source,),
            validate=validate,
            source=str(path),
        )

    @classmethod
    def load(
        cls,
        *,
        config_path: Path | None = None,
        include_env: bool = True,
        cli_overrides: dict[str, Any] | None = None,
    ) -> Self:
        """Load the configuration the supervisor runs with.

        Layers, lowest precedence first: built-in defaults, the TOML file
        (``config_path``, or ``serverkeeper.toml`` in the working directory
        when it exists), ``SERVERKEEPER_*`` environment variables, and
        ``cli_overrides``.

        Raises:
            ConfigLoadError: If the config file is not valid TOML.
            ConfigValidationError: If the merged values are invalid.
        """
        sources = _discover_sources(
            config_path=config_path,
            include_env=include_env,
            cli_overrides=cli_overrides,
        )
        merged = merge_layers(*(s.values for s in reversed(sources)))
        return cls._build(merged, tuple(sources), validate=True)

    @property
    def sources(self) -> list[ConfigSource]:
        """Return the sources consulted, highest precedence first."""
        return list(self._sources)

    @property
    def server(self) -> ServerOptions:
        return self._server

    @property
    def updates(self) -> UpdateOptions:
        return self._updates

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @overload
    def get(self, key: str) -> Any: ...

    @overload
    def get(self, key: str, default: T) -> T: ...

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a raw value by dotted key, e.g. ``server.server_ports``."""
        node: Any = self._data
        for part in key.split("."):
            node = node.get(part, _MISSING) if isinstance(node, dict) else _MISSING
            if node is _MISSING:
                return default
        return node

    def to_dict(self, *, include_defaults: bool = True) -> dict[str, Any]:
        """Return a copy of the merged values.

        Args:
            include_defaults: If False, keep only values that differ from the
                built-in defaults.
        """
        if include_defaults:
            return copy_value(self._data)
        return _changed_values(self._data, DEFAULT_CONFIG)


def _changed_values(data: dict[str, Any], defaults: dict[str, Any]) -> dict[str, Any]:
    changed: dict[str, Any] = {}
    for key, value in data.items():
        default = defaults.get(key, _MISSING)
        if isinstance(value, dict) and isinstance(default, dict):
            nested = _changed_values(value, default)
            if nested:
                changed[key] = nested
        elif value != default:
            changed[key] = copy_value(value)
    return changed
