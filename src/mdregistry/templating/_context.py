"""Rendering contexts and placeholder name resolution.

A base context is derived from a TemplateIR (or directly from data); item
contexts are derived from a base context, one per element of the items
array. Contexts are immutable: deriving one never edits another.

Reserved names available to item templates:

    @index   position of the item in the items array
    @item    the item itself
    @items   the whole items array (only in composed contexts)
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any

from mdregistry.enums import ContextMode, OutputFormat
from mdregistry.exceptions import VariableNotFoundError
from mdregistry.utils import freeze, is_mapping, is_sequence

from ._ir import IRMetadata, TemplateIR

ITEM_RENDERING_STAGE = "item-rendering"
DATA_RENDERING_STAGE = "data-rendering"

INDEX_VARIABLE = "@index"
ITEM_VARIABLE = "@item"
ITEMS_VARIABLE = "@items"

_MISSING = object()


@dataclass(frozen=True, slots=True)
class RenderingOptions:
    """How a context is rendered.

    Attributes:
        format: Target output format.
        expand_items: Whether ``{@items}`` markers are expanded.
    """

    format: OutputFormat
    expand_items: bool = False


@dataclass(frozen=True, slots=True)
class TemplateContext:
    """Immutable variables and options for one render.

    Attributes:
        main_variables: Top-level variables (the item, in item contexts).
        items_data: The items array, when the context is composed.
        variable_context: Named entries, including reserved ``@`` names.
        rendering_options: Format and item expansion flag.
        metadata: Provenance carried over from the IR.
        mode: Explicit flat or composed hierarchy flag.
    """

    main_variables: Any  # pyright: ignore[reportExplicitAny]
    items_data: tuple[Any, ...] | None  # pyright: ignore[reportExplicitAny]
    variable_context: Mapping[str, Any]  # pyright: ignore[reportExplicitAny]
    rendering_options: RenderingOptions
    metadata: IRMetadata
    mode: ContextMode


class TemplateContextBuilder:
    """Derives rendering contexts."""

    @staticmethod
    def from_ir(ir: TemplateIR) -> TemplateContext:
        """Build the base context of a render job.

        The context is composed when the IR carries an items array.
        """
        if ir.items_array is not None:
            mode = ContextMode.COMPOSED
            variable_context = MappingProxyType({ITEMS_VARIABLE: ir.items_array})
        else:
            mode = ContextMode.FLAT
            variable_context = MappingProxyType({})

        return TemplateContext(
            main_variables=ir.main_context,
            items_data=ir.items_array,
            variable_context=variable_context,
            rendering_options=RenderingOptions(
                format=ir.output_format, expand_items=ir.items_array is not None
            ),
            metadata=ir.metadata,
            mode=mode,
        )

    @staticmethod
    def for_item(base: TemplateContext, item: Any, index: int) -> TemplateContext:  # pyright: ignore[reportExplicitAny]
        """Build the context for one element of the items array.

        The item replaces the main variables. The base's main variables stay
        reachable as named entries, next to ``@index``, ``@item`` and
        ``@items``. Item expansion is disabled and the metadata stage is set
        to ``"item-rendering"``.

        The item is stored frozen: as ``main_variables`` and ``@item`` it is
        equal to ``freeze(item)``, so lists read back as tuples and mappings as
        read-only proxies. ``thaw`` returns the plain value. ``@items`` is the
        base context's items array as is.
        """
        entries: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
        if is_mapping(base.main_variables):
            entries.update(
                (key, value)
                for key, value in base.main_variables.items()
                if not str(key).startswith("@")
            )
        frozen_item = freeze(item)
        entries[INDEX_VARIABLE] = index
        entries[ITEM_VARIABLE] = frozen_item
        entries[ITEMS_VARIABLE] = base.items_data if base.items_data is not None else ()

        return TemplateContext(
            main_variables=frozen_item,
            items_data=base.items_data,
            variable_context=MappingProxyType(entries),
            rendering_options=replace(base.rendering_options, expand_items=False),
            metadata=replace(base.metadata, stage=ITEM_RENDERING_STAGE),
            mode=ContextMode.COMPOSED,
        )

    @staticmethod
    def from_single_data(
        data: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
        output_format: OutputFormat = OutputFormat.JSON,
        metadata: IRMetadata | None = None,
    ) -> TemplateContext:
        """Build a flat context; ``@items`` never resolves in it."""
        return TemplateContext(
            main_variables=freeze(data),
            items_data=None,
            variable_context=MappingProxyType({}),
            rendering_options=RenderingOptions(format=output_format, expand_items=False),
            metadata=metadata or IRMetadata(stage=DATA_RENDERING_STAGE),
            mode=ContextMode.FLAT,
        )

    @staticmethod
    def from_composed_data(
        main_data: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
        array_data: Sequence[Any],  # pyright: ignore[reportExplicitAny]
        output_format: OutputFormat = OutputFormat.JSON,
        metadata: IRMetadata | None = None,
    ) -> TemplateContext:
        """Build a composed context; ``@items`` resolves to ``array_data``."""
        items = freeze(array_data)
        return TemplateContext(
            main_variables=freeze(main_data),
            items_data=items,
            variable_context=MappingProxyType({ITEMS_VARIABLE: items}),
            rendering_options=RenderingOptions(format=output_format, expand_items=True),
            metadata=metadata or IRMetadata(stage=DATA_RENDERING_STAGE),
            mode=ContextMode.COMPOSED,
        )


def resolve_variable(context: TemplateContext, name: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Resolve a placeholder name against a context.

    Lookup order:

    1. Reserved ``@`` names, optionally followed by a dotted path
       (``@item.title``). ``@items`` fails in flat contexts.
    2. An exact top-level key of the main variables.
    3. Dotted descent into the main variables.
    4. The same two lookups over the non-reserved named entries.

    A key bound to ``None`` resolves to ``None``.

    Raises:
        VariableNotFoundError: If no step matches.
    """
    name = name.strip()
    if not name:
        raise VariableNotFoundError("Empty placeholder name", name=name)

    if name.startswith("@"):
        head, _, rest = name.partition(".")
        if head == ITEMS_VARIABLE and context.mode is ContextMode.FLAT:
            raise VariableNotFoundError(
                f"'{ITEMS_VARIABLE}' is not available in a flat context", name=name
            )
        if head in context.variable_context:
            value = context.variable_context[head]
            value = _descend(value, rest.split(".")) if rest else value
            if value is not _MISSING:
                return value
        raise VariableNotFoundError(f"Unresolved variable: {name!r}", name=name)

    value = _lookup(context.main_variables, name)
    if value is not _MISSING:
        return value

    named = {
        k: v for k, v in context.variable_context.items() if not str(k).startswith("@")
    }
    value = _lookup(named, name)
    if value is not _MISSING:
        return value

    raise VariableNotFoundError(f"Unresolved variable: {name!r}", name=name)


def _lookup(variables: Any, name: str) -> Any:  # pyright: ignore[reportExplicitAny]
    if not is_mapping(variables):
        return _MISSING
    if name in variables:
        return variables[name]
    if "." in name:
        return _descend(variables, name.split("."))
    return _MISSING


def _descend(value: Any, segments: list[str]) -> Any:  # pyright: ignore[reportExplicitAny]
    for segment in segments:
        if is_mapping(value) and segment in value:
            value = value[segment]
        elif is_sequence(value) and segment.isdigit() and int(segment) < len(value):
            value = value[int(segment)]
        else:
            return _MISSING
    return value
