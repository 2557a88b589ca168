"""Data models for directive-annotated schemas.

A schema is a JSON-Schema-shaped tree. Only the ``x-`` directive keys listed
in ``DIRECTIVE_KEYS`` are interpreted; every other keyword is kept verbatim in
``SchemaProperty.raw`` and otherwise ignored.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from mdregistry.enums import OutputFormat
from mdregistry.exceptions import SchemaError
from mdregistry.utils import freeze

# =============================================================================
# Directive Keys
# =============================================================================

FRONTMATTER_PART = "x-frontmatter-part"
JMESPATH_FILTER = "x-jmespath-filter"
DERIVED_FROM = "x-derived-from"
DERIVED_UNIQUE = "x-derived-unique"
TEMPLATE = "x-template"
TEMPLATE_ITEMS = "x-template-items"
TEMPLATE_FORMAT = "x-template-format"
FLATTEN_ARRAYS = "x-flatten-arrays"

DIRECTIVE_KEYS: frozenset[str] = frozenset(
    {
        FRONTMATTER_PART,
        JMESPATH_FILTER,
        DERIVED_FROM,
        DERIVED_UNIQUE,
        TEMPLATE,
        TEMPLATE_ITEMS,
        TEMPLATE_FORMAT,
        FLATTEN_ARRAYS,
    }
)


# =============================================================================
# Models
# =============================================================================


@dataclass(frozen=True, slots=True)
class Directives:
    """Directives attached to one schema property.

    Attributes:
        frontmatter_part: Marks the array holding per-item records.
        jmespath_filter: Predicate expression selecting items of that array.
        derived_from: Source path expression for a derived field.
        derived_unique: Deduplicate derived values.
        template: Companion template reference.
        template_items: Companion items template reference.
        template_format: Explicit output format for the companion template.
        flatten_arrays: Dotted document path whose nested arrays are
            flattened before items are collected.
    """

    frontmatter_part: bool = False
    jmespath_filter: str | None = None
    derived_from: str | None = None
    derived_unique: bool = False
    template: str | None = None
    template_items: str | None = None
    template_format: OutputFormat | None = None
    flatten_arrays: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], path: str = "") -> "Directives":  # pyright: ignore[reportExplicitAny]
        """Read the recognised directive keys of one schema node.

        Raises:
            SchemaError: If a directive carries a value of the wrong type.
        """
        template_format = _optional_str(data, TEMPLATE_FORMAT, path)
        if template_format is not None:
            try:
                output_format = OutputFormat(template_format.lower())
            except ValueError:
                raise SchemaError(
                    f"Unknown output format {template_format!r} at {path or '<root>'}",
                    directive=TEMPLATE_FORMAT,
                    path=path,
                    value=template_format,
                ) from None
        else:
            output_format = None

        return cls(
            frontmatter_part=_bool(data, FRONTMATTER_PART, path),
            jmespath_filter=_optional_str(data, JMESPATH_FILTER, path),
            derived_from=_optional_str(data, DERIVED_FROM, path),
            derived_unique=_bool(data, DERIVED_UNIQUE, path),
            template=_optional_str(data, TEMPLATE, path),
            template_items=_optional_str(data, TEMPLATE_ITEMS, path),
            template_format=output_format,
            flatten_arrays=_path(data, FLATTEN_ARRAYS, path),
        )


@dataclass(frozen=True, slots=True)
class SchemaProperty:
    """One node of a schema tree.

    Attributes:
        name: Property name (empty for the root and for array ``items``).
        path: Dotted path from the schema root (empty for the root).
        type: The JSON-Schema ``type`` keyword, if present.
        properties: Child properties in declaration order.
        items: Schema of array elements, if declared.
        default: The ``default`` keyword, if present.
        directives: Recognised ``x-`` directives.
        raw: The node's original (read-only) mapping.
    """

    name: str
    path: str
    type: str | None = None
    properties: tuple["SchemaProperty", ...] = ()
    items: "SchemaProperty | None" = None
    default: Any = None  # pyright: ignore[reportExplicitAny]
    directives: Directives = field(default_factory=Directives)
    raw: Mapping[str, Any] = field(default_factory=dict)  # pyright: ignore[reportExplicitAny]

    def child(self, name: str) -> "SchemaProperty | None":
        """Return the direct child property called ``name``, if any."""
        for child in self.properties:
            if child.name == name:
                return child
        return None

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
        *,
        name: str = "",
        path: str = "",
    ) -> "SchemaProperty":
        """Parse a schema node and its descendants.

        Raises:
            SchemaError: If the node or a descendant is malformed.
        """
        if not isinstance(data, Mapping):
            raise SchemaError(
                f"Schema node at {path or '<root>'} must be an object",
                path=path,
                value=data,
            )

        type_value = data.get("type")
        if isinstance(type_value, list):
            # ["array", "null"] style unions: keep the first non-null member
            type_value = next((t for t in type_value if t != "null"), None)  # pyright: ignore[reportUnknownVariableType]

        raw_properties = data.get("properties", {})
        if not isinstance(raw_properties, Mapping):
            raise SchemaError(
                f"'properties' at {path or '<root>'} must be an object",
                path=path,
                value=raw_properties,
            )
        children = tuple(
            cls.from_dict(child, name=str(key), path=f"{path}.{key}" if path else str(key))
            for key, child in raw_properties.items()  # pyright: ignore[reportUnknownVariableType]
        )

        raw_items = data.get("items")
        items = (
            cls.from_dict(raw_items, name="", path=path)
            if isinstance(raw_items, Mapping)
            else None
        )

        return cls(
            name=name,
            path=path,
            type=type_value if isinstance(type_value, str) else None,
            properties=children,
            items=items,
            default=freeze(data.get("default")),
            directives=Directives.from_dict(data, path),
            raw=freeze(data),
        )


@dataclass(frozen=True, slots=True)
class SchemaDefinition:
    """A parsed, immutable schema.

    Attributes:
        root: The root schema node.
        source: Where the schema was loaded from (empty when built in memory).
    """

    root: SchemaProperty
    source: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, source: str = "") -> "SchemaDefinition":  # pyright: ignore[reportExplicitAny]
        """Parse a schema from a generic mapping.

        Args:
            data: The schema document.
            source: Optional origin of the schema, kept for metadata.

        Returns:
            The parsed SchemaDefinition.

        Raises:
            SchemaError: If a directive value has the wrong type or the tree is
                malformed.
        """
        return cls(root=SchemaProperty.from_dict(data), source=source)

    @property
    def properties(self) -> tuple[SchemaProperty, ...]:
        """Top-level properties in declaration order."""
        return self.root.properties

    def walk(self) -> list[SchemaProperty]:
        """Return every named property, depth first in declaration order."""
        found: list[SchemaProperty] = []

        def _visit(node: SchemaProperty) -> None:
            for child in node.properties:
                found.append(child)
                _visit(child)

        _visit(self.root)
        return found


# =============================================================================
# Helpers
# =============================================================================


def _bool(data: Mapping[str, Any], key: str, path: str) -> bool:  # pyright: ignore[reportExplicitAny]
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise SchemaError(
            f"Directive {key} at {path or '<root>'} must be a boolean",
            directive=key,
            path=path,
            value=value,
        )
    return value


def _optional_str(data: Mapping[str, Any], key: str, path: str) -> str | None:  # pyright: ignore[reportExplicitAny]
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise SchemaError(
            f"Directive {key} at {path or '<root>'} must be a non-empty string",
            directive=key,
            path=path,
            value=value,
        )
    return value


def _path(data: Mapping[str, Any], key: str, path: str) -> str | None:  # pyright: ignore[reportExplicitAny]
    value = _optional_str(data, key, path)
    if value is not None and not all(value.split(".")):
        raise SchemaError(
            f"Directive {key} at {path or '<root>'} has an empty path segment",
            directive=key,
            path=path,
            value=value,
        )
    return value
