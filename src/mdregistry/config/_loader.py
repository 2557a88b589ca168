# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Configuration sources: TOML files, environment variables and merging."""

import copy
import os
import tomllib
from pathlib import Path
from typing import Any

import orjson

from mdregistry.exceptions import ConfigLoadError

ENV_PREFIX = "MDREGISTRY_"
_SECTION_SEPARATOR = "__"


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Parse one TOML configuration file.

    Raises:
        FileNotFoundError: If ``path`` is missing.
        ConfigLoadError: If the TOML is malformed; carries line and column.
    """
    try:
        content = path.read_bytes()
        return tomllib.loads(content.decode("utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigLoadError(
            f"Failed to parse TOML file {path}: {e}",
            path=str(path),
            line=e.lineno,
            column=e.colno,
        ) from e


def deep_merge(
    base: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    override: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Return ``override`` layered over ``base``.

    Tables present on both sides merge key by key; any other value from
    ``override`` replaces the base value. The result shares nothing with
    either input.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def parse_env_vars(prefix: str = ENV_PREFIX) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Collect ``<prefix>SECTION__KEY`` variables into nested settings.

    ``MDREGISTRY_OUTPUT__JSON_INDENT=4`` yields ``{"output": {"json_indent": 4}}``.
    Names without the ``__`` separator (``MDREGISTRY_DEBUG``) are not settings
    and are skipped.
    """
    settings: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for name, raw in sorted(os.environ.items()):
        if not name.startswith(prefix):
            continue
        remainder = name.removeprefix(prefix)
        if _SECTION_SEPARATOR not in remainder:
            continue
        dotted = ".".join(remainder.lower().split(_SECTION_SEPARATOR))
        set_nested_key(settings, dotted, parse_string_value(raw))
    return settings


def parse_string_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Convert an environment string to the value it spells.

    Tried in order: ``true``/``false`` (any case), integers, decimals, then
    JSON arrays and objects. Anything else stays a string.
    """
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"

    for convert in (int, float):
        if convert is float and "." not in value:
            break
        try:
            return convert(value)
        except ValueError:
            continue

    if value[:1] + value[-1:] in {"[]", "{}"}:
        try:
            return orjson.loads(value)
        except orjson.JSONDecodeError:
            return value

    return value


def set_nested_key(
    d: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    key_path: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Store ``value`` at a dotted path, replacing non-table values on the way."""
    *parents, leaf = key_path.split(".")
    node = d
    for segment in parents:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = node[segment] = {}
        node = child
    node[leaf] = value
