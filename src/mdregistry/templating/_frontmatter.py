"""Front matter parsing for markdown source documents."""

from typing import TYPE_CHECKING, cast

import yaml

from mdregistry.exceptions import FileDecodeError

if TYPE_CHECKING:
    from pathlib import Path

# Type aliases for YAML frontmatter data
type YAMLPrimitive = str | int | float | bool | None
type YAMLKey = str | int | float | bool
type YAMLValue = YAMLPrimitive | list[YAMLValue] | dict[YAMLKey, YAMLValue]
type YAMLFrontmatter = dict[str, YAMLValue]

_DELIMITER = "---"


def parse_frontmatter(content: str) -> tuple[YAMLFrontmatter | None, str]:
    """Split a markdown document into its YAML front matter and body.

    The front matter is the block between a leading ``---`` line and the next
    ``---`` line.

    Args:
        content: The full markdown content.

    Returns:
        A tuple of (front matter mapping or None, body). None is returned when
        there is no block, the block is not valid YAML, or it is not a mapping;
        the body is then the whole content.
    """
    lines = content.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != _DELIMITER:
        return None, content

    end_line: int | None = None
    for index in range(1, len(lines)):
        if lines[index].rstrip("\r\n").rstrip() == _DELIMITER:
            end_line = index
            break
    if end_line is None:
        return None, content

    frontmatter_str = "".join(lines[1:end_line])
    body = "".join(lines[end_line + 1 :]).strip()

    try:
        frontmatter_data = yaml.safe_load(frontmatter_str)  # pyright: ignore[reportAny]
    except yaml.YAMLError:
        return None, content

    if frontmatter_data is None:
        return {}, body
    if not isinstance(frontmatter_data, dict):
        return None, content

    # yaml.safe_load produces string keys at the top level of front matter
    return cast("YAMLFrontmatter", frontmatter_data), body


def load_frontmatter_file(path: "Path") -> tuple[YAMLFrontmatter | None, str]:  # noqa: UP037
    """Load and parse a markdown file's front matter.

    Raises:
        OSError: If the file cannot be read.
        FileDecodeError: If the file is not valid UTF-8.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        msg = f"Source file is not valid UTF-8: {path}"
        raise FileDecodeError(msg, path=str(path), cause=e) from e
    return parse_frontmatter(content)
