"""End-to-end registry build: documents -> aggregate -> IR -> render -> write."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from mdregistry.aggregation import Aggregator
from mdregistry.config import Config, deep_merge
from mdregistry.enums import OutputFormat
from mdregistry.exceptions import ValidationError
from mdregistry.query import evaluate
from mdregistry.schema import (
    SchemaDefinition,
    SchemaProperty,
    derivation_rules,
    find_frontmatter_part,
    flatten_array_paths,
    template_configuration,
    template_format,
)
from mdregistry.templating import (
    DualTemplate,
    OutputRenderingService,
    RenderedOutput,
    SingleTemplate,
    TemplateConfiguration,
    TemplateIRBuilder,
    TemplateRenderer,
    load_frontmatter_file,
)
from mdregistry.utils import create_null_logger, flatten, is_mapping, is_sequence, thaw

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from mdregistry.files import OutputWriter, TemplateReader

REGISTRY_BUILD_STAGE = "registry-build"

_SUFFIX_FORMATS: dict[str, OutputFormat] = {
    ".json": OutputFormat.JSON,
    ".yaml": OutputFormat.YAML,
    ".yml": OutputFormat.YAML,
    ".md": OutputFormat.MARKDOWN,
    ".markdown": OutputFormat.MARKDOWN,
}


@dataclass(frozen=True, slots=True)
class SourceDocument:
    """One parsed source document."""

    path: str
    frontmatter: Mapping[str, Any]  # pyright: ignore[reportExplicitAny]


def collect_documents(
    paths: Iterable[Path | str],
    logger: FilteringBoundLogger | None = None,
) -> list[SourceDocument]:
    """Parse the front matter of markdown files.

    Directories are searched recursively for ``*.md`` files in sorted order.
    Files without a front matter block are skipped with a warning.

    Raises:
        FileNotFoundError: If a given path does not exist.
    """
    log = logger or create_null_logger()
    documents: list[SourceDocument] = []

    for entry in paths:
        path = Path(entry)
        if not path.exists():
            msg = f"Source path not found: {path}"
            raise FileNotFoundError(msg)
        files = sorted(path.rglob("*.md")) if path.is_dir() else [path]
        for file in files:
            frontmatter, _ = load_frontmatter_file(file)
            if frontmatter is None:
                log.warning("document_skipped", path=str(file), reason="no front matter")
                continue
            documents.append(SourceDocument(path=str(file), frontmatter=frontmatter))

    log.debug("documents_collected", count=len(documents))
    return documents


def infer_output_format(output_path: str) -> OutputFormat | None:
    """Return the format implied by an output file suffix, if any."""
    return _SUFFIX_FORMATS.get(Path(output_path).suffix.lower())


def schema_defaults(schema: SchemaDefinition) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Collect ``default`` values of the schema's object properties.

    Derived properties are skipped so that their defaults never mask derived
    values during the merge.
    """

    def _collect(node: SchemaProperty) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        values: dict[str, Any] = thaw(node.default) if is_mapping(node.default) else {}  # pyright: ignore[reportExplicitAny]
        for child in node.properties:
            if child.directives.derived_from is not None:
                continue
            if child.default is not None:
                values.setdefault(child.name, thaw(child.default))
            elif child.properties:
                nested = _collect(child)
                if nested:
                    values.setdefault(child.name, nested)
        return values

    return _collect(schema.root)


class RegistryPipeline:
    """Builds one output document from many source documents.

    Args:
        config: Loaded configuration.
        reader: Template reader; template paths are passed to it unchanged.
        writer: Output writer.
        logger: Optional structlog logger.
    """

    def __init__(
        self,
        config: Config,
        reader: TemplateReader,
        writer: OutputWriter,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._config: Config = config
        self._reader: TemplateReader = reader
        self._writer: OutputWriter = writer
        self._logger: FilteringBoundLogger = logger or create_null_logger()

    def create_aggregator(self) -> Aggregator:
        """Return a fresh Aggregator configured for one batch."""
        settings = self._config.aggregation
        if not settings.circuit_breaker:
            return Aggregator.create_with_disabled_circuit_breaker(self._logger)
        return Aggregator.create(settings.failure_threshold, self._logger)

    def run(
        self,
        schema: SchemaDefinition,
        documents: Sequence[SourceDocument],
        output_path: str,
        *,
        base: Mapping[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
        output_format: OutputFormat | None = None,
        template_config: TemplateConfiguration | None = None,
    ) -> RenderedOutput:
        """Aggregate documents, render them and write the output.

        Args:
            schema: Schema with derivation and template directives.
            documents: Parsed source documents, in processing order.
            output_path: Destination passed to the writer.
            base: Base structure merged over the schema defaults.
            output_format: Output format; defaults to the schema's
                ``x-template-format``, then the output path suffix, then JSON.
            template_config: Templates to use; defaults to the schema's
                template directives.

        Returns:
            The RenderedOutput that was written.

        Raises:
            ValidationError: If no template configuration is available or the
                IR is invalid.
            AggregationError: If aggregation fails.
            RenderError: If rendering fails.
            FileError: If a template cannot be read or the output written.
        """
        config = template_config or template_configuration(schema)
        if config is None:
            msg = "No template configured: pass one or declare x-template in the schema"
            raise ValidationError(msg, field="template_config")

        resolved_format = (
            output_format
            or template_format(schema)
            or infer_output_format(output_path)
            or OutputFormat.JSON
        )
        self._logger.info(
            "pipeline_started",
            documents=len(documents),
            schema=schema.source,
            output=output_path,
            format=str(resolved_format),
        )

        rules = derivation_rules(schema)
        base_data = deep_merge(schema_defaults(schema), thaw(base) if base else {})
        aggregator = self.create_aggregator()
        flatten_paths = flatten_array_paths(schema)
        result = aggregator.aggregate(
            [flatten_document(document.frontmatter, flatten_paths) for document in documents],
            rules,
            base_data,
        )
        main_context = aggregator.merge_with_base(result)

        builder = (
            TemplateIRBuilder()
            .set_output_format(resolved_format)
            .set_main_context(main_context)
            .set_template_config(config)
            .set_metadata(
                REGISTRY_BUILD_STAGE,
                schema_path=schema.source,
                source_files=[document.path for document in documents],
            )
        )
        match config:
            case SingleTemplate(path=path):
                builder.set_main_template_path(path)
            case DualTemplate(main_path=main_path, items_path=items_path):
                items = self.collect_items(schema, documents)
                builder.set_main_template_path(main_path)
                builder.set_items_template_path(items_path)
                builder.set_items_array(items)
        ir = builder.build()
        self._logger.debug(
            "ir_built",
            kind=str(config.kind),
            items=len(ir.items_array) if ir.items_array is not None else 0,
            rules=len(rules),
        )

        service = OutputRenderingService(
            self._reader,
            self._writer,
            renderer=TemplateRenderer(
                single_brace=self._config.templates.single_brace, logger=self._logger
            ),
            json_indent=self._config.output.json_indent,
            yaml_indent=self._config.output.yaml_indent,
            markdown_title_field=self._config.output.markdown_title_field,
            logger=self._logger,
        )
        return service.render_output_from_ir(ir, output_path)

    def collect_items(
        self,
        schema: SchemaDefinition,
        documents: Sequence[SourceDocument],
    ) -> list[Any]:  # pyright: ignore[reportExplicitAny]
        """Gather per-item records from documents.

        Arrays named by ``x-flatten-arrays`` are flattened first. Each document
        then contributes the array at the frontmatter-part path, or itself
        when it has no such field. The part's ``x-jmespath-filter`` finally
        selects the items to keep.
        """
        part = find_frontmatter_part(schema)
        flatten_paths = flatten_array_paths(schema)
        items: list[Any] = []  # pyright: ignore[reportExplicitAny]
        for document in documents:
            data = flatten_document(document.frontmatter, flatten_paths)
            value = _at_path(data, part.path) if part else None
            if is_sequence(value):
                items.extend(thaw(value))
            elif value is None:
                items.append(thaw(data))
            else:
                self._logger.warning(
                    "items_field_not_array", path=document.path, field=part.path if part else ""
                )

        if part is not None and part.directives.jmespath_filter is not None:
            before = len(items)
            items = evaluate(part.directives.jmespath_filter, items)
            self._logger.debug(
                "items_filtered",
                expression=part.directives.jmespath_filter,
                before=before,
                after=len(items),
            )
        return items


def _at_path(data: Mapping[str, Any], path: str) -> Any:  # pyright: ignore[reportExplicitAny]
    value: Any = data  # pyright: ignore[reportExplicitAny]
    for segment in path.split("."):
        if not is_mapping(value) or segment not in value:
            return None
        value = value[segment]
    return value


def flatten_document(
    data: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    paths: Sequence[str],
) -> Mapping[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Return ``data`` with the arrays at dotted ``paths`` deeply flattened.

    A path that is missing, or that holds something other than an array,
    leaves the data as it is. The input is never modified.
    """
    if not paths or not is_mapping(data):
        return data
    result: dict[str, Any] = thaw(data)  # pyright: ignore[reportExplicitAny]
    for path in paths:
        *parents, leaf = path.split(".")
        node: Any = result  # pyright: ignore[reportExplicitAny]
        for segment in parents:
            node = node.get(segment) if isinstance(node, dict) else None
        if isinstance(node, dict) and is_sequence(node.get(leaf)):
            node[leaf] = flatten(node[leaf])
    return result
