# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Reading, layering and typing raw configuration values.

Every configuration source (defaults, the TOML file, ``SERVERKEEPER_*``
variables and ``--set`` overrides) is reduced to a nested dict first. The
helpers here produce those dicts and fold them into one.
"""

import copy
import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from serverkeeper.exceptions import ConfigLoadError

from ._defaults import ENV_PREFIX

type ConfigDict = dict[str, Any]  # pyright: ignore[reportExplicitAny]


def read_toml_file(path: Path) -> ConfigDict:
    """Parse a TOML configuration file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the file is not valid TOML. The error carries
            the line and column reported by the parser.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file {path}: {e}"
        raise ConfigLoadError(msg, path=path, line=e.lineno, column=e.colno) from e


def copy_value(value: Any) -> Any:  # pyright: ignore[reportExplicitAny]
    """Return an independent copy of a configuration value."""
    return copy.deepcopy(value)


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> ConfigDict:  # pyright: ignore[reportExplicitAny]
    """Layer ``override`` on top of ``base`` and return a new dict.

    Tables present in both are merged key by key; anything else in
    ``override`` (scalars, arrays, a table replacing a scalar) replaces the
    base value outright. Keys keep the order of ``base``, with keys only in
    ``override`` appended. Neither argument is modified.
    """
    merged: ConfigDict = copy_value(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy_value(value)
    return merged


def merge_layers(*layers: Mapping[str, Any]) -> ConfigDict:  # pyright: ignore[reportExplicitAny]
    """Merge configuration layers given from lowest to highest precedence."""
    merged: ConfigDict = {}
    for layer in layers:
        if layer:
            merged = deep_merge(merged, layer)
    return merged


def parse_string_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Type a string from the environment or a ``--set`` assignment.

    ``true``/``false`` (any case) become booleans, digits without a dot
    become ints, numbers with a dot become floats, bracketed or braced JSON
    becomes a list or dict. Anything else, including dotted version strings
    such as ``1.21.3.01``, stays a string.

    Examples:
        >>> parse_string_value("false")
        False
        >>> parse_string_value("3600")
        3600
        >>> parse_string_value("0.5")
        0.5
        >>> parse_string_value("[19132, 19133]")
        [19132, 19133]
    """
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"

    number_type = float if "." in value else int
    try:
        return number_type(value)
    except ValueError:
        pass

    if value[:1] + value[-1:] in ("[]", "{}"):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    return value


def set_nested_key(d: ConfigDict, key_path: str, value: Any) -> None:  # pyright: ignore[reportExplicitAny]
    """Assign ``value`` at a dotted path, replacing non-table intermediates.

    Example:
        >>> d = {}
        >>> set_nested_key(d, "server.enable_auto_start", False)
        >>> d
        {'server': {'enable_auto_start': False}}
    """
    *parents, leaf = key_path.split(".")
    table = d
    for part in parents:
        child = table.get(part)
        if not isinstance(child, dict):
            child = table[part] = {}
        table = child
    table[leaf] = value


def parse_env_vars(
    prefix: str = ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> ConfigDict:
    """Collect ``SERVERKEEPER_*`` variables into a nested dict.

    A double underscore separates table levels and names are lowercased, so
    ``SERVERKEEPER_SERVER__ENABLE_AUTO_START=false`` becomes
    ``{"server": {"enable_auto_start": False}}``. Values are typed with
    parse_string_value. Variables without a section separator, such as
    ``SERVERKEEPER_DEBUG``, control the process itself and are skipped.

    Args:
        prefix: Variable prefix to match.
        environ: Mapping to read instead of os.environ.
    """
    source = os.environ if environ is None else environ
    result: ConfigDict = {}
    for name, raw in source.items():
        key = name.removeprefix(prefix)
        if key == name or "__" not in key:
            continue
        set_nested_key(result, key.replace("__", ".").lower(), parse_string_value(raw))
    return result
