"""Template configuration variants.

A render job uses either one template (``SingleTemplate``) or a main template
plus an items template rendered once per item (``DualTemplate``).
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from mdregistry.enums import TemplateKind
from mdregistry.exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class SingleTemplate:
    """One template renders the whole output."""

    path: str

    @property
    def kind(self) -> TemplateKind:
        return TemplateKind.SINGLE


@dataclass(frozen=True, slots=True)
class DualTemplate:
    """A main template with a companion items template."""

    main_path: str
    items_path: str

    @property
    def kind(self) -> TemplateKind:
        return TemplateKind.DUAL


type TemplateConfiguration = SingleTemplate | DualTemplate


def template_config_from_dict(data: Mapping[str, Any]) -> TemplateConfiguration:  # pyright: ignore[reportExplicitAny]
    """Parse the wire shape of a template configuration.

    Accepts ``{"kind": "SingleTemplate", "path": ...}`` and
    ``{"kind": "DualTemplate", "mainPath": ..., "itemsPath": ...}``.

    Raises:
        ValidationError: If the kind is unknown or a path is missing or empty.
    """
    kind = data.get("kind")
    try:
        template_kind = TemplateKind(kind)
    except ValueError:
        raise ValidationError(
            f"Unknown template configuration kind: {kind!r}", field="kind", value=kind
        ) from None

    match template_kind:
        case TemplateKind.SINGLE:
            return SingleTemplate(path=_required_path(data, "path"))
        case TemplateKind.DUAL:
            return DualTemplate(
                main_path=_required_path(data, "mainPath"),
                items_path=_required_path(data, "itemsPath"),
            )


def template_config_to_dict(config: TemplateConfiguration) -> dict[str, str]:
    """Return the wire shape of a template configuration."""
    match config:
        case SingleTemplate(path=path):
            return {"kind": str(TemplateKind.SINGLE), "path": path}
        case DualTemplate(main_path=main_path, items_path=items_path):
            return {
                "kind": str(TemplateKind.DUAL),
                "mainPath": main_path,
                "itemsPath": items_path,
            }


def _required_path(data: Mapping[str, Any], key: str) -> str:  # pyright: ignore[reportExplicitAny]
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"Template configuration requires a non-empty {key!r}", field=key, value=value
        )
    return value
