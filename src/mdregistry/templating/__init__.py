"""Template IR, rendering contexts, placeholder rendering and output formatting."""

from ._config import (
    DualTemplate,
    SingleTemplate,
    TemplateConfiguration,
    template_config_from_dict,
    template_config_to_dict,
)
from ._context import (
    DATA_RENDERING_STAGE,
    INDEX_VARIABLE,
    ITEM_RENDERING_STAGE,
    ITEM_VARIABLE,
    ITEMS_VARIABLE,
    RenderingOptions,
    TemplateContext,
    TemplateContextBuilder,
    resolve_variable,
)
from ._formatter import (
    FormatOptions,
    JsonFormat,
    MarkdownFormat,
    OutputFormatter,
    YamlFormat,
    format_options_for,
)
from ._frontmatter import (
    YAMLFrontmatter,
    YAMLValue,
    load_frontmatter_file,
    parse_frontmatter,
)
from ._ir import IRMetadata, TemplateIR, TemplateIRBuilder, VariableMapping
from ._renderer import ITEMS_MARKER, TemplateRenderer, stringify
from ._service import RENDER_STAGE, OutputRenderingService, RenderedOutput

__all__ = [
    "DATA_RENDERING_STAGE",
    "INDEX_VARIABLE",
    "ITEMS_MARKER",
    "ITEMS_VARIABLE",
    "ITEM_RENDERING_STAGE",
    "ITEM_VARIABLE",
    "RENDER_STAGE",
    "DualTemplate",
    "FormatOptions",
    "IRMetadata",
    "JsonFormat",
    "MarkdownFormat",
    "OutputFormatter",
    "OutputRenderingService",
    "RenderedOutput",
    "RenderingOptions",
    "SingleTemplate",
    "TemplateConfiguration",
    "TemplateContext",
    "TemplateContextBuilder",
    "TemplateIR",
    "TemplateIRBuilder",
    "TemplateRenderer",
    "VariableMapping",
    "YAMLFrontmatter",
    "YAMLValue",
    "YamlFormat",
    "format_options_for",
    "load_frontmatter_file",
    "parse_frontmatter",
    "resolve_variable",
    "stringify",
    "template_config_from_dict",
    "template_config_to_dict",
]
