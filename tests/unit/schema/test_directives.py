from typing import Any

import pytest

from mdregistry.aggregation import DerivationRule
from mdregistry.enums import OutputFormat
from mdregistry.exceptions import FrontmatterPartNotFoundError, RuleValidationError
from mdregistry.schema import (
    SchemaDefinition,
    derivation_rules,
    find_frontmatter_part,
    find_frontmatter_part_path,
    find_property,
    flatten_array_paths,
    has_jmespath_filter,
    template_configuration,
    template_format,
)
from mdregistry.templating import DualTemplate, SingleTemplate


@pytest.fixture
def requirements_schema() -> SchemaDefinition:
    return SchemaDefinition.from_dict(
        {
            "type": "object",
            "x-template": "main.md",
            "x-template-format": "markdown",
            "properties": {
                "title": {"type": "string"},
                "req": {
                    "type": "array",
                    "x-frontmatter-part": True,
                    "x-jmespath-filter": "[?id.level=='req']",
                    "x-template": "item.md",
                },
                "levels": {
                    "type": "array",
                    "x-derived-from": "req[].id.level",
                    "x-derived-unique": True,
                },
            },
        },
        source="schemas/req.json",
    )


class TestFrontmatterPart:
    def test_finds_marked_property(self, requirements_schema: SchemaDefinition) -> None:
        assert find_frontmatter_part_path(requirements_schema) == "req"

    def test_finds_nested_property(self) -> None:
        schema = SchemaDefinition.from_dict(
            {
                "properties": {
                    "tools": {
                        "properties": {"commands": {"x-frontmatter-part": True}},
                    }
                }
            }
        )

        assert find_frontmatter_part_path(schema) == "tools.commands"

    def test_first_in_declaration_order_wins(self) -> None:
        schema = SchemaDefinition.from_dict(
            {
                "properties": {
                    "a": {"properties": {"deep": {"x-frontmatter-part": True}}},
                    "b": {"x-frontmatter-part": True},
                }
            }
        )

        assert find_frontmatter_part_path(schema) == "a.deep"

    def test_false_flag_is_not_a_match(self) -> None:
        schema = SchemaDefinition.from_dict(
            {"properties": {"a": {"x-frontmatter-part": False}}}
        )

        assert find_frontmatter_part(schema) is None

    def test_missing_part_raises_with_schema_path(self) -> None:
        schema = SchemaDefinition.from_dict(
            {"properties": {"a": {"type": "string"}}}, source="s.json"
        )

        with pytest.raises(FrontmatterPartNotFoundError) as exc_info:
            _ = find_frontmatter_part_path(schema)

        assert exc_info.value.schema_path == "s.json"
        assert "x-frontmatter-part" in str(exc_info.value)


class TestFilters:
    def test_has_jmespath_filter(self, requirements_schema: SchemaDefinition) -> None:
        req = find_property(requirements_schema, "req")
        title = find_property(requirements_schema, "title")

        assert req is not None
        assert title is not None
        assert has_jmespath_filter(req) is True
        assert has_jmespath_filter(title) is False


class TestFindProperty:
    def test_returns_none_for_missing_path(self, requirements_schema: SchemaDefinition) -> None:
        assert find_property(requirements_schema, "req.nope") is None

    def test_returns_property(self, requirements_schema: SchemaDefinition) -> None:
        prop = find_property(requirements_schema, "levels")

        assert prop is not None
        assert prop.path == "levels"


class TestDerivationRules:
    def test_builds_rule_per_derived_property(
        self, requirements_schema: SchemaDefinition
    ) -> None:
        assert derivation_rules(requirements_schema) == [
            DerivationRule(
                source_expression="req[].id.level", target_path="levels", unique=True
            )
        ]

    def test_nested_target_uses_dotted_path(self) -> None:
        schema = SchemaDefinition.from_dict(
            {
                "properties": {
                    "tools": {
                        "properties": {
                            "availableConfigs": {"x-derived-from": "tools.commands[].c1"}
                        }
                    }
                }
            }
        )

        [rule] = derivation_rules(schema)

        assert rule.target_path == "tools.availableConfigs"
        assert rule.unique is False

    def test_no_rules_without_directives(self) -> None:
        schema = SchemaDefinition.from_dict({"properties": {"a": {}}})

        assert derivation_rules(schema) == []

    def test_invalid_target_raises(self) -> None:
        schema = SchemaDefinition.from_dict(
            {"properties": {"a": {"properties": {"": {"x-derived-from": "x"}}}}}
        )

        with pytest.raises(RuleValidationError):
            _ = derivation_rules(schema)


class TestTemplateConfiguration:
    def test_items_template_from_frontmatter_part(
        self, requirements_schema: SchemaDefinition
    ) -> None:
        assert template_configuration(requirements_schema) == DualTemplate(
            main_path="main.md", items_path="item.md"
        )

    def test_root_items_template_takes_precedence(self) -> None:
        schema = SchemaDefinition.from_dict(
            {
                "x-template": "main.json",
                "x-template-items": "root-item.json",
                "properties": {"a": {"x-frontmatter-part": True, "x-template": "a.json"}},
            }
        )

        assert template_configuration(schema) == DualTemplate(
            main_path="main.json", items_path="root-item.json"
        )

    def test_single_template(self) -> None:
        schema = SchemaDefinition.from_dict({"x-template": "main.yaml"})

        assert template_configuration(schema) == SingleTemplate(path="main.yaml")

    def test_none_without_root_template(self) -> None:
        schema = SchemaDefinition.from_dict(
            {"properties": {"a": {"x-frontmatter-part": True, "x-template": "a.md"}}}
        )

        assert template_configuration(schema) is None

    def test_template_format(self, requirements_schema: SchemaDefinition) -> None:
        assert template_format(requirements_schema) is OutputFormat.MARKDOWN

    def test_template_format_absent(self) -> None:
        schema: dict[str, Any] = {"x-template": "main.json"}

        assert template_format(SchemaDefinition.from_dict(schema)) is None


class TestFlattenArrayPaths:
    def test_collects_targets_in_declaration_order(self) -> None:
        schema = SchemaDefinition.from_dict(
            {
                "x-flatten-arrays": "tags",
                "properties": {
                    "traceability": {
                        "type": "array",
                        "x-frontmatter-part": True,
                        "x-flatten-arrays": "traceability",
                    },
                    "meta": {
                        "type": "object",
                        "properties": {
                            "refs": {"type": "array", "x-flatten-arrays": "meta.refs"}
                        },
                    },
                },
            }
        )

        assert flatten_array_paths(schema) == ["tags", "traceability", "meta.refs"]

    def test_empty_without_directive(self, requirements_schema: SchemaDefinition) -> None:
        assert flatten_array_paths(requirements_schema) == []
