"""Template intermediate representation.

A ``TemplateIR`` describes one render job: which templates to use, the data
bound to them, the output format and where the job came from. It is built
once by ``TemplateIRBuilder``, which validates everything in ``build`` and
never hands out a partially built value.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Self

from mdregistry.enums import OutputFormat, TemplateKind
from mdregistry.exceptions import IRValidationError
from mdregistry.utils import freeze, is_mapping, is_sequence

from ._config import DualTemplate, SingleTemplate, TemplateConfiguration


@dataclass(frozen=True, slots=True)
class VariableMapping:
    """Binds a template variable name to a source data path."""

    name: str
    source_path: str


@dataclass(frozen=True, slots=True)
class IRMetadata:
    """Provenance of a render job.

    Attributes:
        stage: Pipeline stage that produced the IR or context.
        schema_path: Schema the data was interpreted with.
        source_files: Source documents, in processing order.
    """

    stage: str
    schema_path: str = ""
    source_files: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TemplateIR:
    """Validated, immutable description of one render job.

    ``items_template_path`` and ``items_array`` are both present exactly when
    ``template_config`` is a ``DualTemplate``.
    """

    main_template_path: str
    items_template_path: str | None
    output_format: OutputFormat
    main_context: Mapping[str, Any]  # pyright: ignore[reportExplicitAny]
    items_array: tuple[Any, ...] | None  # pyright: ignore[reportExplicitAny]
    template_config: TemplateConfiguration
    variable_mappings: tuple[VariableMapping, ...]
    metadata: IRMetadata

    @property
    def has_items(self) -> bool:
        return self.items_array is not None


class TemplateIRBuilder:
    """Accumulates the parts of a TemplateIR and validates them once.

    Setters return the builder so calls can be chained.
    """

    def __init__(self) -> None:
        self._main_template_path: str | None = None
        self._items_template_path: str | None = None
        self._output_format: OutputFormat | str | None = None
        self._main_context: Any = None  # pyright: ignore[reportExplicitAny]
        self._items_array: Any = None  # pyright: ignore[reportExplicitAny]
        self._template_config: TemplateConfiguration | None = None
        self._variable_mappings: list[VariableMapping] = []
        self._metadata: IRMetadata | None = None

    def set_main_template_path(self, path: str) -> Self:
        self._main_template_path = path
        return self

    def set_items_template_path(self, path: str | None) -> Self:
        self._items_template_path = path
        return self

    def set_output_format(self, output_format: OutputFormat | str) -> Self:
        self._output_format = output_format
        return self

    def set_main_context(self, context: Mapping[str, Any]) -> Self:  # pyright: ignore[reportExplicitAny]
        self._main_context = context
        return self

    def set_items_array(self, items: Sequence[Any] | None) -> Self:  # pyright: ignore[reportExplicitAny]
        self._items_array = items
        return self

    def set_template_config(self, config: TemplateConfiguration) -> Self:
        self._template_config = config
        return self

    def set_variable_mappings(self, mappings: Sequence[VariableMapping]) -> Self:
        self._variable_mappings = list(mappings)
        return self

    def add_variable_mapping(self, name: str, source_path: str) -> Self:
        self._variable_mappings.append(VariableMapping(name, source_path))
        return self

    def set_metadata(
        self,
        stage: str,
        schema_path: str = "",
        source_files: Sequence[str] = (),
    ) -> Self:
        self._metadata = IRMetadata(
            stage=stage, schema_path=schema_path, source_files=tuple(source_files)
        )
        return self

    def build(self) -> TemplateIR:
        """Validate the accumulated fields and return an immutable TemplateIR.

        Checks run in order and the first failure is raised: main template
        path, output format, template configuration, metadata stage, main
        context shape, then the items rules. ``SingleTemplate`` forbids both
        the items template path and the items array; ``DualTemplate``
        requires both.

        Raises:
            IRValidationError: On the first violated constraint.
        """
        if not self._main_template_path:
            raise IRValidationError(
                "Main template path is required", field="main_template_path"
            )

        if self._output_format is None:
            raise IRValidationError("Output format is required", field="output_format")
        try:
            output_format = OutputFormat(self._output_format)
        except ValueError:
            raise IRValidationError(
                f"Unknown output format: {self._output_format!r}",
                field="output_format",
                value=self._output_format,
            ) from None

        config = self._template_config
        if config is None:
            raise IRValidationError(
                "Template configuration is required", field="template_config"
            )

        if self._metadata is None or not self._metadata.stage:
            raise IRValidationError("Metadata stage is required", field="metadata.stage")

        main_context = self._main_context if self._main_context is not None else {}
        if not is_mapping(main_context):
            raise IRValidationError(
                "Main context must be an object",
                field="main_context",
                value=main_context,
            )

        if self._items_array is not None and not is_sequence(self._items_array):
            raise IRValidationError(
                "Items array must be an array", field="items_array", value=self._items_array
            )

        has_items_path = self._items_template_path is not None
        has_items_array = self._items_array is not None
        if has_items_path != has_items_array:
            present, missing = (
                ("items_template_path", "items_array")
                if has_items_path
                else ("items_array", "items_template_path")
            )
            raise IRValidationError(
                f"{present} is set but {missing} is not; they must be set together",
                field=missing,
            )

        match config:
            case SingleTemplate():
                if has_items_path:
                    raise IRValidationError(
                        f"{TemplateKind.SINGLE} does not allow an items template or items array",
                        field="template_config",
                        value=config,
                    )
            case DualTemplate():
                if not has_items_path:
                    raise IRValidationError(
                        f"{TemplateKind.DUAL} requires an items template and items array",
                        field="template_config",
                        value=config,
                    )

        return TemplateIR(
            main_template_path=self._main_template_path,
            items_template_path=self._items_template_path,
            output_format=output_format,
            main_context=freeze(main_context),
            items_array=freeze(self._items_array) if has_items_array else None,
            template_config=config,
            variable_mappings=tuple(self._variable_mappings),
            metadata=self._metadata,
        )


