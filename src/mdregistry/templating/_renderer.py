"""Placeholder substitution for text and structured templates.

Templates reference variables with ``{{ name }}`` (and, when enabled,
``{name}``) and mark the item array slot with ``{@items}``. Every placeholder
must resolve: unresolved names and an items marker without items raise
``RenderError`` subclasses, so placeholder text never reaches the output.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import orjson

from mdregistry.exceptions import (
    MissingItemsError,
    TemplateSyntaxError,
    UnresolvedPlaceholderError,
    VariableNotFoundError,
)
from mdregistry.utils import create_null_logger, is_mapping, is_sequence, thaw

from ._context import resolve_variable

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from ._context import TemplateContext

ITEMS_MARKER = "{@items}"

_SINGLE_NAME = r"(?:@|[^\W\d])[\w@.\-]*"
_DOUBLE_BRACE = r"\{\{\s*(?P<double>[^{}]*?)\s*\}\}"
_SINGLE_BRACE = rf"(?<!\{{)\{{\s*(?P<single>{_SINGLE_NAME})\s*\}}(?!\}})"
_MARKER = r"(?P<marker>\{@items\})"

_PATTERN = re.compile(f"{_MARKER}|{_DOUBLE_BRACE}")
_PATTERN_WITH_SINGLE = re.compile(f"{_MARKER}|{_DOUBLE_BRACE}|{_SINGLE_BRACE}")
_WHOLE_DOUBLE = re.compile(rf"^\s*{_DOUBLE_BRACE}\s*$")
_WHOLE_SINGLE = re.compile(rf"^\s*{_SINGLE_BRACE}\s*$")


def stringify(value: Any) -> str:  # pyright: ignore[reportExplicitAny,reportAny]
    """Render a value for text output.

    ``None`` becomes the empty string, booleans are lower case, lists of
    scalars are comma separated and other containers are compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if is_sequence(value) and not any(is_mapping(v) or is_sequence(v) for v in value):
        return ", ".join(stringify(v) for v in value)
    if is_mapping(value) or is_sequence(value):
        return orjson.dumps(thaw(value)).decode()
    return str(value)


class TemplateRenderer:
    """Substitutes placeholders using a TemplateContext.

    Args:
        single_brace: Also accept ``{name}`` placeholders.
        logger: Optional structlog logger.
    """

    def __init__(
        self,
        *,
        single_brace: bool = False,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._single_brace: bool = single_brace
        self._pattern: re.Pattern[str] = (
            _PATTERN_WITH_SINGLE if single_brace else _PATTERN
        )
        self._logger: FilteringBoundLogger = logger or create_null_logger()

    def render_text(
        self,
        template: str,
        context: TemplateContext,
        rendered_items: Sequence[str] | None = None,
        *,
        template_path: str | None = None,
        separator: str = "\n",
    ) -> str:
        """Render a text template.

        Args:
            template: Template text.
            context: Context placeholders are resolved against.
            rendered_items: Already rendered items spliced at ``{@items}``.
            template_path: Template location, used in error messages.
            separator: Joins rendered items at the marker.

        Returns:
            The rendered text.

        Raises:
            UnresolvedPlaceholderError: If a placeholder has no binding.
            MissingItemsError: If ``{@items}`` appears but the context does not
                expand items or no rendered items were given.
        """

        def _substitute(match: re.Match[str]) -> str:
            if match.group("marker"):
                items = self._require_items(context, rendered_items, template_path)
                return separator.join(items)
            return stringify(self._resolve(context, _name_of(match), template_path))

        return self._pattern.sub(_substitute, template)

    def render_tree(
        self,
        template: Any,  # pyright: ignore[reportExplicitAny,reportAny]
        context: TemplateContext,
        rendered_items: Sequence[Any] | None = None,  # pyright: ignore[reportExplicitAny]
        *,
        template_path: str | None = None,
    ) -> Any:  # pyright: ignore[reportExplicitAny]
        """Render a parsed JSON or YAML template.

        A string that is exactly one placeholder is replaced by the bound
        value with its type kept. A string equal to ``{@items}`` becomes the
        list of rendered items; inside a list, the marker element is replaced
        by the items in place. Other strings, keys included, are rendered as
        text.

        Raises:
            UnresolvedPlaceholderError: If a placeholder has no binding.
            MissingItemsError: If the marker appears without items.
            TemplateSyntaxError: If the marker is embedded in a longer string
                or used as a key.
        """
        if isinstance(template, str):
            if template.strip() == ITEMS_MARKER:
                items = self._require_items(context, rendered_items, template_path)
                return [thaw(item) for item in items]
            whole = _WHOLE_DOUBLE.match(template) or (
                _WHOLE_SINGLE.match(template) if self._single_brace else None
            )
            if whole:
                return thaw(self._resolve(context, _name_of(whole), template_path))
            return self._render_scalar_text(template, context, template_path)

        if is_mapping(template):
            return {
                self._render_key(key, context, template_path): self.render_tree(
                    value, context, rendered_items, template_path=template_path
                )
                for key, value in template.items()
            }

        if is_sequence(template):
            result: list[Any] = []  # pyright: ignore[reportExplicitAny]
            for element in template:
                if isinstance(element, str) and element.strip() == ITEMS_MARKER:
                    items = self._require_items(context, rendered_items, template_path)
                    result.extend(thaw(item) for item in items)
                else:
                    result.append(
                        self.render_tree(
                            element, context, rendered_items, template_path=template_path
                        )
                    )
            return result

        return template

    def _render_key(
        self,
        key: Any,  # pyright: ignore[reportExplicitAny,reportAny]
        context: TemplateContext,
        template_path: str | None,
    ) -> Any:  # pyright: ignore[reportExplicitAny]
        if isinstance(key, str):
            return self._render_scalar_text(key, context, template_path)
        return key

    def _render_scalar_text(
        self,
        text: str,
        context: TemplateContext,
        template_path: str | None,
    ) -> str:
        # Rendered items are structures here; they cannot be joined into text.
        if ITEMS_MARKER in text:
            path = template_path or "<template>"
            raise TemplateSyntaxError(
                f"{ITEMS_MARKER} must be a whole value in {path}, found in {text!r}",
                template_path=path,
            )
        return self.render_text(text, context, template_path=template_path)

    def _resolve(
        self,
        context: TemplateContext,
        name: str,
        template_path: str | None,
    ) -> Any:  # pyright: ignore[reportExplicitAny]
        try:
            return resolve_variable(context, name)
        except VariableNotFoundError as e:
            location = f" in {template_path}" if template_path else ""
            self._logger.debug("placeholder_unresolved", name=name, template=template_path)
            raise UnresolvedPlaceholderError(
                f"Unresolved placeholder {{{{{name}}}}}{location}",
                name=name,
                template_path=template_path,
            ) from e

    @staticmethod
    def _require_items(
        context: TemplateContext,
        rendered_items: Sequence[Any] | None,  # pyright: ignore[reportExplicitAny]
        template_path: str | None,
    ) -> Sequence[Any]:  # pyright: ignore[reportExplicitAny]
        if rendered_items is None or not context.rendering_options.expand_items:
            location = f" in {template_path}" if template_path else ""
            raise MissingItemsError(
                f"Template uses {ITEMS_MARKER}{location} but no items are available"
            )
        return rendered_items


def _name_of(match: re.Match[str]) -> str:
    groups = match.groupdict()
    return groups.get("double") or groups.get("single") or ""
