# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Serialization of final structures to JSON, YAML and Markdown.

The emitted document's top-level keys are exactly the structure's own keys;
the formatter never wraps a structure (for example under ``results``).
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import orjson
import yaml

from mdregistry.enums import OutputFormat
from mdregistry.exceptions import ValidationError
from mdregistry.utils import is_mapping, is_sequence, thaw

from ._renderer import stringify

DEFAULT_INDENT = 2
DEFAULT_TITLE_FIELD = "title"


@dataclass(frozen=True, slots=True)
class JsonFormat:
    indent: int = DEFAULT_INDENT

    @property
    def kind(self) -> OutputFormat:
        return OutputFormat.JSON


@dataclass(frozen=True, slots=True)
class YamlFormat:
    indent_size: int = DEFAULT_INDENT

    @property
    def kind(self) -> OutputFormat:
        return OutputFormat.YAML


@dataclass(frozen=True, slots=True)
class MarkdownFormat:
    """Markdown layout: ``## <title>`` per item followed by ``- Field: value`` lines.

    Attributes:
        title_field: Item field used for the heading.
    """

    title_field: str = DEFAULT_TITLE_FIELD

    @property
    def kind(self) -> OutputFormat:
        return OutputFormat.MARKDOWN


type FormatOptions = JsonFormat | YamlFormat | MarkdownFormat


def format_options_for(
    output_format: OutputFormat,
    *,
    json_indent: int = DEFAULT_INDENT,
    yaml_indent: int = DEFAULT_INDENT,
    title_field: str = DEFAULT_TITLE_FIELD,
) -> FormatOptions:
    """Return the format options for an output format."""
    match output_format:
        case OutputFormat.JSON:
            return JsonFormat(indent=json_indent)
        case OutputFormat.YAML:
            return YamlFormat(indent_size=yaml_indent)
        case OutputFormat.MARKDOWN:
            return MarkdownFormat(title_field=title_field)


class OutputFormatter:
    """Serializes structures to text."""

    @classmethod
    def create(cls) -> "OutputFormatter":
        return cls()

    def format(self, structure: Any, options: FormatOptions) -> str:
        """Serialize a structure.

        Args:
            structure: A mapping or sequence (frozen or plain).
            options: Target format and its settings.

        Returns:
            The serialized text, ending with a newline.

        Raises:
            ValidationError: If an indent is negative.
        """
        data = thaw(structure)
        match options:
            case JsonFormat(indent=indent):
                return _format_json(data, indent)
            case YamlFormat(indent_size=indent_size):
                return _format_yaml(data, indent_size)
            case MarkdownFormat(title_field=title_field):
                return _format_markdown(data, title_field)


# =============================================================================
# JSON / YAML
# =============================================================================


def _check_indent(indent: int, field: str) -> None:
    if indent < 0:
        raise ValidationError(f"{field} must not be negative", field=field, value=indent)


def _format_json(data: Any, indent: int) -> str:
    _check_indent(indent, "indent")
    if indent == 0:
        return orjson.dumps(data).decode() + "\n"
    if indent == DEFAULT_INDENT:
        return orjson.dumps(data, option=orjson.OPT_INDENT_2).decode() + "\n"
    # orjson only supports two-space indentation
    return json.dumps(data, indent=indent, ensure_ascii=False) + "\n"


def _format_yaml(data: Any, indent_size: int) -> str:
    _check_indent(indent_size, "indent_size")
    return yaml.safe_dump(
        data,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        indent=max(indent_size, DEFAULT_INDENT),
    )


# =============================================================================
# Markdown
# =============================================================================


def _label(key: str) -> str:
    return key[:1].upper() + key[1:]


def _item_block(item: Any, title_field: str, position: int) -> list[str]:
    if not is_mapping(item):
        return [f"## {stringify(item)}", ""]
    title = item.get(title_field)
    lines = [f"## {stringify(title) if title not in (None, '') else f'Item {position}'}"]
    lines.extend(
        f"- {_label(str(key))}: {stringify(value)}"
        for key, value in item.items()
        if key != title_field
    )
    lines.append("")
    return lines


def _is_item_list(value: Any) -> bool:
    return is_sequence(value) and any(is_mapping(v) for v in value)


def _markdown_lines(data: Mapping[str, Any], title_field: str) -> list[str]:
    fields: list[str] = []
    blocks: list[str] = []
    for key, value in data.items():
        if _is_item_list(value):
            for position, item in enumerate(value, start=1):
                blocks.extend(_item_block(item, title_field, position))
        elif is_mapping(value):
            nested = _markdown_lines(value, title_field)
            blocks.extend(nested)
        else:
            fields.append(f"- {_label(str(key))}: {stringify(value)}")
    if fields and blocks:
        fields.append("")
    return fields + blocks


def _format_markdown(data: Any, title_field: str) -> str:
    if is_sequence(data):
        lines: list[str] = []
        for position, item in enumerate(data, start=1):
            lines.extend(_item_block(item, title_field, position))
    elif is_mapping(data):
        lines = []
        title = data.get(title_field)
        if title not in (None, "") and not is_mapping(title) and not is_sequence(title):
            lines.extend([f"# {stringify(title)}", ""])
            data = {k: v for k, v in data.items() if k != title_field}
        lines.extend(_markdown_lines(data, title_field))
    else:
        lines = [stringify(data)]
    return "\n".join(lines).rstrip("\n") + "\n"
