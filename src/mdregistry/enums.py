"""Enumeration types for mdregistry."""

from enum import StrEnum


class OutputFormat(StrEnum):
    """Supported rendered output formats."""

    JSON = "json"
    YAML = "yaml"
    MARKDOWN = "markdown"


class TemplateKind(StrEnum):
    """Template configuration variants (wire values of the ``kind`` tag)."""

    SINGLE = "SingleTemplate"
    DUAL = "DualTemplate"


class ContextMode(StrEnum):
    """Hierarchy of a rendering context.

    FLAT contexts carry a single data object and never bind ``@items``.
    COMPOSED contexts carry a main object plus an associated array.
    """

    FLAT = "flat"
    COMPOSED = "composed"


class MergeStrategyKind(StrEnum):
    """Strategies for combining structures across documents."""

    MERGE_ARRAYS = "merge_arrays"
    REPLACE_VALUES = "replace_values"
