from typing import Any

import orjson
import pytest
import yaml
from hypothesis import given, strategies as st

from mdregistry.enums import OutputFormat
from mdregistry.exceptions import IRValidationError
from mdregistry.templating import (
    ITEM_RENDERING_STAGE,
    DualTemplate,
    JsonFormat,
    OutputFormatter,
    SingleTemplate,
    TemplateContextBuilder,
    TemplateIRBuilder,
    TemplateRenderer,
    YamlFormat,
    resolve_variable,
)
from mdregistry.utils import thaw

names = st.from_regex(r"[a-z][a-z0-9_]{0,7}", fullmatch=True)
scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-1000, max_value=1000),
    st.text(alphabet=st.characters(categories=["L", "Nd"]), max_size=8),
)
flat_data = st.dictionaries(names, scalars, max_size=6)
items = st.lists(flat_data, max_size=5)
nested_items = st.lists(
    st.dictionaries(
        names,
        st.one_of(
            scalars,
            st.lists(scalars, max_size=3),
            st.dictionaries(names, st.lists(scalars, max_size=2), max_size=2),
        ),
        max_size=4,
    ),
    min_size=1,
    max_size=4,
)


@given(data=flat_data, item_list=items.filter(bool), index=st.integers(min_value=0, max_value=4))
def test_for_item_binds_item_and_index(
    data: dict[str, Any], item_list: list[dict[str, Any]], index: int
) -> None:
    index %= len(item_list)
    base = TemplateContextBuilder.from_composed_data(data, item_list)
    item = item_list[index]

    context = TemplateContextBuilder.for_item(base, item, index)

    assert resolve_variable(context, "@index") == index
    assert context.rendering_options.expand_items is False
    assert context.metadata.stage == ITEM_RENDERING_STAGE
    for key, value in item.items():
        assert resolve_variable(context, key) == value
    for key, value in data.items():
        if key not in item:
            assert resolve_variable(context, key) == value
    assert base.rendering_options.expand_items is True


@given(main=flat_data, item_list=nested_items, index=st.integers(min_value=0, max_value=3))
def test_item_context_from_ir_exposes_item_and_items(
    main: dict[str, Any], item_list: list[dict[str, Any]], index: int
) -> None:
    index %= len(item_list)
    ir = (
        TemplateIRBuilder()
        .set_main_template_path("main.md")
        .set_items_template_path("item.md")
        .set_items_array(item_list)
        .set_main_context(main)
        .set_output_format(OutputFormat.MARKDOWN)
        .set_template_config(DualTemplate("main.md", "item.md"))
        .set_metadata("render")
        .build()
    )
    base = TemplateContextBuilder.from_ir(ir)

    context = TemplateContextBuilder.for_item(base, item_list[index], index)

    assert thaw(context.main_variables) == item_list[index]
    assert thaw(context.variable_context["@item"]) == item_list[index]
    assert context.variable_context["@items"] == ir.items_array
    assert thaw(context.variable_context["@items"]) == item_list
    assert context.variable_context["@index"] == index


@given(
    single=st.booleans(),
    with_items_path=st.booleans(),
    with_items_array=st.booleans(),
)
def test_ir_builds_iff_items_match_config(
    single: bool, with_items_path: bool, with_items_array: bool
) -> None:
    config = SingleTemplate(path="main.md") if single else DualTemplate("main.md", "item.md")
    builder = (
        TemplateIRBuilder()
        .set_main_template_path("main.md")
        .set_items_template_path("item.md" if with_items_path else None)
        .set_items_array([{}] if with_items_array else None)
        .set_output_format(OutputFormat.MARKDOWN)
        .set_template_config(config)
        .set_metadata("render")
    )
    valid = (with_items_path == with_items_array) and (single != with_items_path)

    if valid:
        ir = builder.build()
        assert ir.has_items is not single
    else:
        with pytest.raises(IRValidationError):
            _ = builder.build()


@given(structure=st.dictionaries(names, st.one_of(scalars, st.lists(scalars, max_size=3)), max_size=6))
def test_formatter_keeps_exactly_the_structure_keys(structure: dict[str, Any]) -> None:
    formatter = OutputFormatter.create()

    as_json = orjson.loads(formatter.format(structure, JsonFormat()))
    as_yaml = yaml.safe_load(formatter.format(structure, YamlFormat())) or {}

    assert list(as_json) == list(structure)
    assert as_json == structure
    assert as_yaml == structure


@given(data=flat_data.filter(bool), item_list=items)
def test_rendered_text_has_no_placeholders(
    data: dict[str, Any], item_list: list[dict[str, Any]]
) -> None:
    context = TemplateContextBuilder.from_composed_data(data, item_list)
    template = "\n".join(f"{key}: {{{{{key}}}}}" for key in data) + "\n{@items}\n"
    rendered_items = [f"item {i}" for i in range(len(item_list))]

    result = TemplateRenderer().render_text(template, context, rendered_items)

    assert "{{" not in result
    assert "{@items}" not in result
