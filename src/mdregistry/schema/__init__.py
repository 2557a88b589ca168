"""Directive-annotated schema model."""

from ._directives import (
    derivation_rules,
    find_frontmatter_part,
    find_frontmatter_part_path,
    find_property,
    flatten_array_paths,
    has_jmespath_filter,
    template_configuration,
    template_format,
)
from ._loader import load_schema
from ._models import (
    DERIVED_FROM,
    DERIVED_UNIQUE,
    DIRECTIVE_KEYS,
    FLATTEN_ARRAYS,
    FRONTMATTER_PART,
    JMESPATH_FILTER,
    TEMPLATE,
    TEMPLATE_FORMAT,
    TEMPLATE_ITEMS,
    Directives,
    SchemaDefinition,
    SchemaProperty,
)

__all__ = [
    "DERIVED_FROM",
    "DERIVED_UNIQUE",
    "DIRECTIVE_KEYS",
    "FLATTEN_ARRAYS",
    "FRONTMATTER_PART",
    "JMESPATH_FILTER",
    "TEMPLATE",
    "TEMPLATE_FORMAT",
    "TEMPLATE_ITEMS",
    "Directives",
    "SchemaDefinition",
    "SchemaProperty",
    "derivation_rules",
    "find_frontmatter_part",
    "find_frontmatter_part_path",
    "find_property",
    "flatten_array_paths",
    "has_jmespath_filter",
    "load_schema",
    "template_configuration",
    "template_format",
]
