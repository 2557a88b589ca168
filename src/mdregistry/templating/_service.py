"""Output rendering service: TemplateIR in, written document out."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import orjson
import yaml

from mdregistry.enums import OutputFormat
from mdregistry.exceptions import TemplateSyntaxError
from mdregistry.utils import create_null_logger

from ._config import DualTemplate, SingleTemplate, TemplateConfiguration
from ._context import TemplateContext, TemplateContextBuilder
from ._formatter import (
    DEFAULT_INDENT,
    DEFAULT_TITLE_FIELD,
    OutputFormatter,
    format_options_for,
)
from ._ir import TemplateIR, TemplateIRBuilder
from ._renderer import ITEMS_MARKER, TemplateRenderer

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from mdregistry.files import OutputWriter, TemplateReader

RENDER_STAGE = "render"


@dataclass(frozen=True, slots=True)
class RenderedOutput:
    """Final text and the logical path it was written to."""

    path: str
    content: str
    format: OutputFormat


class OutputRenderingService:
    """Renders a TemplateIR and writes the result.

    Markdown templates are rendered as text: each item is rendered with the
    items template and the results are joined, in item order, at the main
    template's ``{@items}`` marker. JSON and YAML templates are parsed first;
    rendered item objects replace the ``{@items}`` value and the final
    structure is serialized by the OutputFormatter.

    Args:
        reader: Template reader collaborator.
        writer: Output writer collaborator.
        renderer: Placeholder renderer; a default one is created if omitted.
        formatter: Structure serializer; a default one is created if omitted.
        json_indent: JSON indent width.
        yaml_indent: YAML indent width.
        markdown_title_field: Title field for formatter-produced Markdown.
        logger: Optional structlog logger.
    """

    def __init__(
        self,
        reader: TemplateReader,
        writer: OutputWriter,
        *,
        renderer: TemplateRenderer | None = None,
        formatter: OutputFormatter | None = None,
        json_indent: int = DEFAULT_INDENT,
        yaml_indent: int = DEFAULT_INDENT,
        markdown_title_field: str = DEFAULT_TITLE_FIELD,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._reader: TemplateReader = reader
        self._writer: OutputWriter = writer
        self._logger: FilteringBoundLogger = logger or create_null_logger()
        self._renderer: TemplateRenderer = renderer or TemplateRenderer(
            logger=self._logger
        )
        self._formatter: OutputFormatter = formatter or OutputFormatter.create()
        self._json_indent: int = json_indent
        self._yaml_indent: int = yaml_indent
        self._title_field: str = markdown_title_field

    def render_output_from_ir(self, ir: TemplateIR, output_path: str) -> RenderedOutput:
        """Render a job and write it to ``output_path``.

        Args:
            ir: The validated render job.
            output_path: Where the writer stores the result.

        Returns:
            The RenderedOutput that was written.

        Raises:
            TemplateFileNotFoundError: If a template cannot be read; the
                message names the path.
            RenderError: If a placeholder is unresolved, the items marker has
                no items, or a structured template does not parse.
            OutputWriteError: If the writer fails.
        """
        base = TemplateContextBuilder.from_ir(ir)
        main_text = self._reader.read(ir.main_template_path)

        items_text: str | None = None
        match ir.template_config, ir.items_template_path:
            case DualTemplate(), str(items_path):
                items_text = self._reader.read(items_path)
            case _:
                pass

        if ir.output_format is OutputFormat.MARKDOWN:
            content = self._render_markdown(ir, base, main_text, items_text)
        else:
            content = self._render_structured(ir, base, main_text, items_text)

        self._writer.write(output_path, content)
        self._logger.info(
            "output_rendered",
            path=output_path,
            format=str(ir.output_format),
            items=len(ir.items_array) if ir.items_array is not None else 0,
            stage=ir.metadata.stage,
        )
        return RenderedOutput(path=output_path, content=content, format=ir.output_format)

    def render_output(
        self,
        main_template_path: str,
        items_template_path: str | None,
        main_data: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
        items_data: Sequence[Any] | None,  # pyright: ignore[reportExplicitAny]
        output_path: str,
        output_format: OutputFormat | str,
    ) -> RenderedOutput:
        """Build an IR from plain arguments and render it.

        A ``DualTemplate`` configuration is used when an items template path
        is given, ``SingleTemplate`` otherwise.

        Raises:
            IRValidationError: If the arguments do not form a valid IR.
        """
        config: TemplateConfiguration = (
            DualTemplate(main_path=main_template_path, items_path=items_template_path)
            if items_template_path is not None
            else SingleTemplate(path=main_template_path)
        )
        ir = (
            TemplateIRBuilder()
            .set_main_template_path(main_template_path)
            .set_items_template_path(items_template_path)
            .set_output_format(output_format)
            .set_main_context(main_data)
            .set_items_array(items_data)
            .set_template_config(config)
            .set_metadata(RENDER_STAGE)
            .build()
        )
        return self.render_output_from_ir(ir, output_path)

    # -- formats -------------------------------------------------------------

    def _render_markdown(
        self,
        ir: TemplateIR,
        base: TemplateContext,
        main_text: str,
        items_text: str | None,
    ) -> str:
        rendered_items: list[str] | None = None
        if items_text is not None and ir.items_array is not None:
            rendered_items = [
                self._renderer.render_text(
                    items_text,
                    TemplateContextBuilder.for_item(base, item, index),
                    template_path=ir.items_template_path,
                ).strip("\n")
                for index, item in enumerate(ir.items_array)
            ]
            if ITEMS_MARKER not in main_text:
                # Items follow the main content when the template has no slot
                main_text = f"{main_text.rstrip()}\n\n{ITEMS_MARKER}\n"
        content = self._renderer.render_text(
            main_text,
            base,
            rendered_items,
            template_path=ir.main_template_path,
            separator="\n\n",
        )
        return content if content.endswith("\n") else content + "\n"

    def _render_structured(
        self,
        ir: TemplateIR,
        base: TemplateContext,
        main_text: str,
        items_text: str | None,
    ) -> str:
        main_tree = _parse_template(main_text, ir.output_format, ir.main_template_path)

        rendered_items: list[Any] | None = None  # pyright: ignore[reportExplicitAny]
        items_path = ir.items_template_path
        if items_text is not None and ir.items_array is not None and items_path is not None:
            items_tree = _parse_template(items_text, ir.output_format, items_path)
            rendered_items = [
                self._renderer.render_tree(
                    items_tree,
                    TemplateContextBuilder.for_item(base, item, index),
                    template_path=items_path,
                )
                for index, item in enumerate(ir.items_array)
            ]

        structure = self._renderer.render_tree(
            main_tree, base, rendered_items, template_path=ir.main_template_path
        )
        options = format_options_for(
            ir.output_format,
            json_indent=self._json_indent,
            yaml_indent=self._yaml_indent,
            title_field=self._title_field,
        )
        return self._formatter.format(structure, options)


def _parse_template(text: str, output_format: OutputFormat, template_path: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Parse a JSON or YAML template into a value tree."""
    try:
        if output_format is OutputFormat.JSON:
            return orjson.loads(text)
        return yaml.safe_load(text)
    except (orjson.JSONDecodeError, yaml.YAMLError) as e:
        msg = f"Failed to parse {output_format} template {template_path}: {e}"
        raise TemplateSyntaxError(msg, template_path=template_path, cause=e) from e
