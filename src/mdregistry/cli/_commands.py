# pyright: reportExplicitAny=false, reportAny=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""The ``build`` and ``schema`` commands."""

from pathlib import Path
from typing import Annotated, Any

import orjson
import yaml
from cyclopts import Parameter
from rich.table import Table
from rich.text import Text

from mdregistry.config import Config
from mdregistry.enums import OutputFormat
from mdregistry.exceptions import MdRegistryError, ValidationError
from mdregistry.files import LocalFileSystem
from mdregistry.pipeline import RegistryPipeline, collect_documents
from mdregistry.schema import (
    SchemaDefinition,
    derivation_rules,
    find_frontmatter_part,
    load_schema,
    template_configuration,
    template_format,
)
from mdregistry.templating import template_config_to_dict
from mdregistry.utils import create_logger

from ._context import CLIContext
from ._shared import exit_code_for, exit_with_error


def build(
    schema: Path,
    /,
    *inputs: Path,
    output: Annotated[Path, Parameter(name=["--output", "-o"])],
    output_format: Annotated[
        OutputFormat | None, Parameter(name=["--format", "-f"])
    ] = None,
    config: Annotated[Path | None, Parameter(name="--config")] = None,
    base: Annotated[Path | None, Parameter(name="--base")] = None,
) -> None:
    """Build a registry from markdown front matter.

    Args:
        schema: Schema with derivation and template directives.
        inputs: Markdown files or directories to read.
        output: Output file.
        output_format: Output format; defaults to the schema's
            x-template-format, then the output suffix.
        config: Configuration file; defaults to ./mdregistry.toml.
        base: JSON or YAML file with the base structure.
    """
    ctx = CLIContext.get_current()
    overrides = {"logging": {"level": "debug"}} if ctx.verbose else None

    try:
        loaded = Config.load(config_path=config, overrides=overrides)
        logger = create_logger(
            level=loaded.logging.level.value,
            log_format=loaded.logging.format.value,
            log_file=loaded.logging.file,
            component="build",
        )
        definition = load_schema(schema)
        documents = collect_documents(inputs, logger)
        pipeline = RegistryPipeline(
            loaded,
            reader=LocalFileSystem(base_dir=schema.parent),
            writer=LocalFileSystem(),
            logger=logger,
        )
        rendered = pipeline.run(
            definition,
            documents,
            str(output),
            base=_load_base(base) if base is not None else None,
            output_format=output_format,
        )
    except (MdRegistryError, OSError) as e:
        exit_with_error(str(e), exit_code_for(e), console=ctx.error_console)

    ctx.console.print(
        f"Wrote {rendered.path} ({rendered.format}, {len(documents)} documents)",
        highlight=False,
    )


def schema(path: Path, /) -> None:
    """Show the directives a schema declares.

    Args:
        path: Schema file.
    """
    ctx = CLIContext.get_current()
    try:
        definition = load_schema(path)
    except MdRegistryError as e:
        exit_with_error(str(e), exit_code_for(e), console=ctx.error_console)

    ctx.console.print(directive_table(definition))


def directive_table(definition: SchemaDefinition) -> Table:
    """Summarize a schema's directives as a rich table."""
    table = Table(title=definition.source or "schema")
    table.add_column("Directive", style="cyan")
    table.add_column("Property")
    table.add_column("Value")

    part = find_frontmatter_part(definition)
    if part is not None:
        table.add_row("frontmatter part", part.path, "")
    for prop in definition.walk():
        if prop.directives.jmespath_filter is not None:
            table.add_row("filter", prop.path, Text(prop.directives.jmespath_filter))
    for prop in (definition.root, *definition.walk()):
        if prop.directives.flatten_arrays is not None:
            table.add_row("flatten", prop.path or "<root>", Text(prop.directives.flatten_arrays))
    for rule in derivation_rules(definition):
        source = rule.source_expression + (" (unique)" if rule.unique else "")
        table.add_row("derived", rule.target_path, Text(source))

    config = template_configuration(definition)
    if config is not None:
        for key, value in template_config_to_dict(config).items():
            if key != "kind":
                table.add_row("template", key, Text(value))
    output_format = template_format(definition)
    if output_format is not None:
        table.add_row("format", "", str(output_format))
    return table


def _load_base(path: Path) -> dict[str, Any]:
    content = path.read_bytes()
    try:
        data = (
            orjson.loads(content)
            if path.suffix.lower() == ".json"
            else yaml.safe_load(content)
        )
    except (orjson.JSONDecodeError, yaml.YAMLError) as e:
        msg = f"Invalid base file {path}: {e}"
        raise ValidationError(msg, field="base", value=str(path)) from e
    if not isinstance(data, dict):
        msg = f"Base file {path} must contain an object"
        raise ValidationError(msg, field="base", value=str(path))
    return data
