"""Helpers for generic value trees (front matter, template data, structures).

Value trees are built from mappings, sequences and scalars as produced by the
YAML and JSON parsers. Frozen trees use read-only mapping proxies and tuples so
that immutable values (IR, contexts) cannot be edited through nested objects.
"""

from collections.abc import Hashable, Mapping, Sequence
from types import MappingProxyType
from typing import Any

type Scalar = str | int | float | bool | None
type Value = Scalar | Sequence[Value] | Mapping[str, Value]


def is_mapping(value: object) -> bool:
    """Return True if value is a mapping node."""
    return isinstance(value, Mapping)


def is_sequence(value: object) -> bool:
    """Return True if value is a sequence node (strings and bytes excluded)."""
    return isinstance(value, Sequence) and not isinstance(value, str | bytes)


def has_value(value: object) -> bool:
    """Return True unless value is ``None`` or the empty string."""
    return value is not None and value != ""


def freeze(value: Any) -> Any:  # pyright: ignore[reportExplicitAny,reportAny]
    """Return a deeply read-only copy of a value tree.

    Mappings become ``MappingProxyType`` over a fresh dict and sequences become
    tuples. Scalars are returned unchanged.
    """
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})  # pyright: ignore[reportUnknownVariableType]
    if is_sequence(value):
        return tuple(freeze(item) for item in value)  # pyright: ignore[reportUnknownVariableType]
    return value


def thaw(value: Any) -> Any:  # pyright: ignore[reportExplicitAny,reportAny]
    """Return a plain ``dict``/``list`` deep copy of a value tree.

    Serializers (orjson, PyYAML) only accept builtin containers.
    """
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}  # pyright: ignore[reportUnknownVariableType]
    if is_sequence(value):
        return [thaw(item) for item in value]  # pyright: ignore[reportUnknownVariableType]
    return value


def identity_key(value: Any) -> Hashable:  # pyright: ignore[reportExplicitAny,reportAny]
    """Return a hashable key that is equal for equal value trees.

    Frozen and plain containers of the same content share a key. Booleans are
    tagged so that ``True`` and ``1`` stay distinct; mapping key order is
    ignored.
    """
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, Mapping):
        return (
            "mapping",
            frozenset((k, identity_key(v)) for k, v in value.items()),  # pyright: ignore[reportUnknownVariableType,reportUnknownArgumentType]
        )
    if is_sequence(value):
        return ("sequence", tuple(identity_key(item) for item in value))  # pyright: ignore[reportUnknownVariableType]
    return ("scalar", value)


def dedupe(values: Sequence[Any], key: str | None = None) -> list[Any]:  # pyright: ignore[reportExplicitAny]
    """Remove duplicates from a sequence, keeping the first occurrence.

    Equality is value equality (see ``identity_key``), so unhashable values
    (dicts, lists) are supported. When ``key`` is given, mapping elements that
    carry the key are compared by that field only; other elements fall back to
    value equality.

    Args:
        values: Values in source order.
        key: Optional field name identifying mapping elements.

    Returns:
        A new list with later duplicates dropped.
    """
    seen: set[Hashable] = set()
    result: list[Any] = []  # pyright: ignore[reportExplicitAny]

    for value in values:
        identity = (
            ("key", identity_key(value[key]))
            if key is not None and isinstance(value, Mapping) and key in value
            else identity_key(value)
        )
        if identity in seen:
            continue
        seen.add(identity)
        result.append(value)

    return result


def flatten(values: Sequence[Any]) -> list[Any]:  # pyright: ignore[reportExplicitAny]
    """Flatten nested sequences into one list, keeping element order.

    ``["a", ["b", ["c"]], "d"]`` becomes ``["a", "b", "c", "d"]``. Mappings
    and strings are elements, not sequences, and are kept whole.
    """
    result: list[Any] = []  # pyright: ignore[reportExplicitAny]
    for value in values:
        if is_sequence(value):
            result.extend(flatten(value))
        else:
            result.append(value)
    return result
