"""Lookups over schema directives.

All functions are pure reads of an already-parsed SchemaDefinition.
"""

from mdregistry.aggregation import DerivationRule
from mdregistry.enums import OutputFormat
from mdregistry.exceptions import FrontmatterPartNotFoundError
from mdregistry.templating import DualTemplate, SingleTemplate, TemplateConfiguration

from ._models import SchemaDefinition, SchemaProperty


def find_frontmatter_part_path(schema: SchemaDefinition) -> str:
    """Return the dotted path of the first property marked ``x-frontmatter-part``.

    The search is depth first over object ``properties`` in declaration order.

    Raises:
        FrontmatterPartNotFoundError: If no property carries the directive.
    """
    found = find_frontmatter_part(schema)
    if found is None:
        raise FrontmatterPartNotFoundError(
            "No property is marked with x-frontmatter-part",
            schema_path=schema.source,
        )
    return found.path


def find_frontmatter_part(schema: SchemaDefinition) -> SchemaProperty | None:
    """Return the first property marked ``x-frontmatter-part``, if any."""
    for prop in schema.walk():
        if prop.directives.frontmatter_part:
            return prop
    return None


def has_jmespath_filter(prop: SchemaProperty) -> bool:
    """Return True iff the property carries an ``x-jmespath-filter`` directive."""
    return prop.directives.jmespath_filter is not None


def find_property(schema: SchemaDefinition, path: str) -> SchemaProperty | None:
    """Return the property at a dotted path, or None."""
    node = schema.root
    for segment in path.split("."):
        child = node.child(segment)
        if child is None:
            return None
        node = child
    return node


def derivation_rules(schema: SchemaDefinition) -> list[DerivationRule]:
    """Build a DerivationRule for every property carrying ``x-derived-from``.

    The rule's target is the property's own dotted path; ``x-derived-unique``
    sets ``unique``. Rules are returned in depth-first declaration order.

    Raises:
        RuleValidationError: If a derived property yields an invalid rule.
    """
    return [
        DerivationRule.create(
            prop.directives.derived_from,
            prop.path,
            unique=prop.directives.derived_unique,
        )
        for prop in schema.walk()
        if prop.directives.derived_from is not None
    ]


def template_configuration(schema: SchemaDefinition) -> TemplateConfiguration | None:
    """Derive the template configuration from template directives.

    ``x-template`` on the root names the main template. The items template is
    the root's ``x-template-items`` or, failing that, the ``x-template`` of the
    frontmatter-part property. Returns None when the root names no template.
    """
    main = schema.root.directives.template
    if main is None:
        return None

    items = schema.root.directives.template_items
    if items is None:
        part = find_frontmatter_part(schema)
        if part is not None:
            items = part.directives.template

    if items is None:
        return SingleTemplate(path=main)
    return DualTemplate(main_path=main, items_path=items)


def template_format(schema: SchemaDefinition) -> OutputFormat | None:
    """Return the root's ``x-template-format``, if declared."""
    return schema.root.directives.template_format


def flatten_array_paths(schema: SchemaDefinition) -> list[str]:
    """Return the ``x-flatten-arrays`` targets, root first, then depth first."""
    return [
        prop.directives.flatten_arrays
        for prop in (schema.root, *schema.walk())
        if prop.directives.flatten_arrays is not None
    ]
