"""Structured aggregation of rendered per-document structures.

Each source document renders to a structure shaped like its template. These
structures are merged into one document: declared arrays are concatenated
(and, with ``MergeArrays``, deduplicated), scalar fields are resolved by the
strategy, and nested structures are merged recursively.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

import orjson
import yaml

from mdregistry.enums import MergeStrategyKind, OutputFormat
from mdregistry.exceptions import StructureValidationError, TemplateSyntaxError
from mdregistry.templating import ITEMS_MARKER
from mdregistry.utils import dedupe, freeze, has_value, is_mapping, is_sequence, thaw

# =============================================================================
# Template Structure
# =============================================================================


@dataclass(frozen=True, slots=True)
class TemplateStructure:
    """Declared shape of a structured template.

    Attributes:
        scalar_fields: Keys holding scalar values.
        array_fields: Keys holding arrays.
        nested_structures: Keys holding objects, with their own shape.
    """

    scalar_fields: tuple[str, ...] = ()
    array_fields: tuple[str, ...] = ()
    nested_structures: Mapping[str, "TemplateStructure"] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_value(cls, value: Mapping[str, Any]) -> "TemplateStructure":  # pyright: ignore[reportExplicitAny]
        """Derive the shape of a parsed template object."""
        scalars: list[str] = []
        arrays: list[str] = []
        nested: dict[str, TemplateStructure] = {}
        for key, item in value.items():
            if is_sequence(item) or item == ITEMS_MARKER:
                arrays.append(key)
            elif is_mapping(item):
                nested[key] = cls.from_value(item)
            else:
                scalars.append(key)
        return cls(
            scalar_fields=tuple(scalars),
            array_fields=tuple(arrays),
            nested_structures=MappingProxyType(nested),
        )


def analyze_template_structure(
    template_text: str,
    output_format: OutputFormat,
    template_path: str = "<template>",
) -> TemplateStructure:
    """Parse a JSON or YAML template and describe its shape.

    A string value equal to ``{@items}`` is an array slot.

    Raises:
        TemplateSyntaxError: If the template does not parse, or the format is
            not a structured one.
    """
    try:
        match output_format:
            case OutputFormat.JSON:
                parsed = orjson.loads(template_text)
            case OutputFormat.YAML:
                parsed = yaml.safe_load(template_text)
            case OutputFormat.MARKDOWN:
                raise TemplateSyntaxError(
                    "Markdown templates have no structure to analyze",
                    template_path=template_path,
                )
    except (orjson.JSONDecodeError, yaml.YAMLError) as e:
        raise TemplateSyntaxError(
            f"Failed to parse {output_format} template {template_path}: {e}",
            template_path=template_path,
            cause=e,
        ) from e

    if not is_mapping(parsed):
        raise TemplateSyntaxError(
            f"Template {template_path} must contain an object at the top level",
            template_path=template_path,
        )
    return TemplateStructure.from_value(parsed)


# =============================================================================
# Strategies
# =============================================================================


@dataclass(frozen=True, slots=True)
class MergeArrays:
    """Concatenate declared arrays and drop duplicates.

    Attributes:
        merge_key: Field identifying object elements; value equality if None.
    """

    merge_key: str | None = None

    @property
    def kind(self) -> MergeStrategyKind:
        return MergeStrategyKind.MERGE_ARRAYS


@dataclass(frozen=True, slots=True)
class ReplaceValues:
    """Concatenate arrays as-is and pick scalar values by priority."""

    priority: Literal["latest", "first"] = "latest"

    @property
    def kind(self) -> MergeStrategyKind:
        return MergeStrategyKind.REPLACE_VALUES


type MergeStrategy = MergeArrays | ReplaceValues


# =============================================================================
# Aggregated Structure
# =============================================================================


@dataclass(frozen=True, slots=True)
class AggregatedStructure:
    """A validated structure with the merge strategy applied.

    Attributes:
        data: The read-only structure.
        strategy: The strategy that was applied.
        template_structure: The shape the data was validated against.
    """

    data: Mapping[str, Any]  # pyright: ignore[reportExplicitAny]
    strategy: MergeStrategy
    template_structure: TemplateStructure

    @classmethod
    def create(
        cls,
        raw_structure: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
        strategy: MergeStrategy,
        template_structure: TemplateStructure,
    ) -> "AggregatedStructure":
        """Validate a raw structure and apply the strategy.

        Validation is structural: declared arrays must be arrays and declared
        nested structures must be objects. Scalar fields may hold any value,
        since a whole-value placeholder keeps the bound value's type. Missing
        and undeclared keys are allowed.

        Raises:
            StructureValidationError: If the structure does not match.
        """
        _validate(raw_structure, template_structure, "")
        data: dict[str, Any] = thaw(raw_structure)  # pyright: ignore[reportExplicitAny]
        match strategy:
            case MergeArrays(merge_key=merge_key):
                _dedupe_arrays(data, template_structure, merge_key)
            case ReplaceValues():
                pass
        return cls(
            data=freeze(data), strategy=strategy, template_structure=template_structure
        )

    def to_dict(self) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Return a plain mutable copy of the data."""
        return thaw(self.data)


def _validate(value: object, structure: TemplateStructure, path: str) -> None:
    if not isinstance(value, Mapping):
        raise StructureValidationError(
            f"Expected an object at {path or '<root>'}", path=path, value=value
        )

    def _child(key: str) -> str:
        return f"{path}.{key}" if path else key

    for key in structure.array_fields:
        if key in value and value[key] is not None and not is_sequence(value[key]):
            raise StructureValidationError(
                f"Expected an array at {_child(key)}",
                path=_child(key),
                field=key,
                value=value[key],
            )
    for key, nested in structure.nested_structures.items():
        if key in value and value[key] is not None:
            _validate(value[key], nested, _child(key))


def _dedupe_arrays(
    data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    structure: TemplateStructure,
    merge_key: str | None,
) -> None:
    for key in structure.array_fields:
        if is_sequence(data.get(key)):
            data[key] = dedupe(data[key], merge_key)
    for key, nested in structure.nested_structures.items():
        if isinstance(data.get(key), dict):
            _dedupe_arrays(data[key], nested, merge_key)


# =============================================================================
# Structured Aggregator
# =============================================================================


class StructuredAggregator:
    """Merges many rendered structures into one AggregatedStructure."""

    def aggregate(
        self,
        structures: Sequence[Mapping[str, Any]],  # pyright: ignore[reportExplicitAny]
        template_structure: TemplateStructure,
        strategy: MergeStrategy,
    ) -> AggregatedStructure:
        """Merge structures in order, then validate and apply the strategy.

        Arrays are concatenated in input order. Scalars keep the latest value
        that has one, or the first with ``ReplaceValues(priority="first")``.

        Raises:
            StructureValidationError: If any input does not match the shape.
        """
        merged: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
        for structure in structures:
            _validate(structure, template_structure, "")
            _merge_into(merged, structure, template_structure, strategy)
        return AggregatedStructure.create(merged, strategy, template_structure)


def _merge_into(
    target: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    source: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    structure: TemplateStructure,
    strategy: MergeStrategy,
) -> None:
    match strategy:
        case ReplaceValues(priority="first"):
            keep_first = True
        case MergeArrays() | ReplaceValues():
            keep_first = False
    for key, value in source.items():
        if key in structure.array_fields:
            if is_sequence(value):
                target.setdefault(key, []).extend(thaw(value))
        elif key in structure.nested_structures and is_mapping(value):
            child = target.setdefault(key, {})
            if isinstance(child, dict):
                _merge_into(child, value, structure.nested_structures[key], strategy)  # pyright: ignore[reportUnknownArgumentType]
        elif not has_value(value):
            target.setdefault(key, thaw(value))
        elif keep_first and has_value(target.get(key)):
            continue
        else:
            target[key] = thaw(value)
