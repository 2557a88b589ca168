import pytest

from mdregistry.exceptions import ExpressionSyntaxError
from mdregistry.query import (
    And,
    Comparison,
    Field,
    Filter,
    Flatten,
    Index,
    LiteralOperand,
    Not,
    Or,
    PathOperand,
    compile_expression,
)


class TestPaths:
    def test_single_field(self) -> None:
        expression = compile_expression("version")

        assert expression.text == "version"
        assert expression.steps == (Field("version"),)

    def test_dotted_fields(self) -> None:
        expression = compile_expression("tools.commands.c1")

        assert expression.steps == (Field("tools"), Field("commands"), Field("c1"))

    def test_flatten_projection(self) -> None:
        expression = compile_expression("commands[].c1")

        assert expression.steps == (Field("commands"), Flatten(), Field("c1"))

    def test_index(self) -> None:
        expression = compile_expression("items[0].name")

        assert expression.steps == (Field("items"), Index(0), Field("name"))

    def test_negative_index(self) -> None:
        expression = compile_expression("items[-1]")

        assert expression.steps == (Field("items"), Index(-1))

    def test_root_filter(self) -> None:
        expression = compile_expression("[?id.level=='req']")

        assert expression.steps == (
            Filter(
                Comparison(
                    PathOperand((Field("id"), Field("level"))),
                    "==",
                    LiteralOperand("req"),
                )
            ),
        )

    def test_quoted_identifier(self) -> None:
        expression = compile_expression('"x-frontmatter-part".value')

        assert expression.steps == (Field("x-frontmatter-part"), Field("value"))

    def test_hyphenated_identifier(self) -> None:
        expression = compile_expression("meta.created-by")

        assert expression.steps == (Field("meta"), Field("created-by"))

    def test_whitespace_is_ignored(self) -> None:
        expression = compile_expression("  commands [ ] . c1  ")

        assert expression.steps == (Field("commands"), Flatten(), Field("c1"))


class TestPredicates:
    def test_bare_path_is_truthiness_test(self) -> None:
        expression = compile_expression("items[?enabled]")

        step = expression.steps[1]
        assert step == Filter(Comparison(PathOperand((Field("enabled"),))))

    def test_number_literal(self) -> None:
        expression = compile_expression("items[?count >= 2]")

        step = expression.steps[1]
        assert isinstance(step, Filter)
        assert step.predicate == Comparison(
            PathOperand((Field("count"),)), ">=", LiteralOperand(2)
        )

    def test_float_and_negative_literals(self) -> None:
        expression = compile_expression("items[?score > -1.5]")

        step = expression.steps[1]
        assert isinstance(step, Filter)
        assert isinstance(step.predicate, Comparison)
        assert step.predicate.right == LiteralOperand(-1.5)

    @pytest.mark.parametrize(
        ("text", "value"),
        [("true", True), ("false", False), ("null", None)],
    )
    def test_keyword_literals(self, text: str, value: object) -> None:
        expression = compile_expression(f"items[?flag == {text}]")

        step = expression.steps[1]
        assert isinstance(step, Filter)
        assert isinstance(step.predicate, Comparison)
        assert step.predicate.right == LiteralOperand(value)

    def test_keyword_prefix_is_a_field(self) -> None:
        expression = compile_expression("items[?trueish]")

        step = expression.steps[1]
        assert step == Filter(Comparison(PathOperand((Field("trueish"),))))

    def test_backtick_json_literal(self) -> None:
        expression = compile_expression("items[?tags == `[\"a\", \"b\"]`]")

        step = expression.steps[1]
        assert isinstance(step, Filter)
        assert isinstance(step.predicate, Comparison)
        assert step.predicate.right == LiteralOperand(["a", "b"])

    def test_escaped_quote_in_raw_string(self) -> None:
        expression = compile_expression(r"items[?name == 'it\'s']")

        step = expression.steps[1]
        assert isinstance(step, Filter)
        assert isinstance(step.predicate, Comparison)
        assert step.predicate.right == LiteralOperand("it's")

    def test_and_binds_tighter_than_or(self) -> None:
        expression = compile_expression("items[?a || b && c]")

        step = expression.steps[1]
        assert isinstance(step, Filter)
        a, b, c = (Comparison(PathOperand((Field(n),))) for n in "abc")
        assert step.predicate == Or(a, And(b, c))

    def test_parentheses_and_negation(self) -> None:
        expression = compile_expression("items[?!(a || b)]")

        step = expression.steps[1]
        assert isinstance(step, Filter)
        a, b = (Comparison(PathOperand((Field(n),))) for n in "ab")
        assert step.predicate == Not(Or(a, b))

    def test_not_equal_is_not_negation(self) -> None:
        expression = compile_expression("items[?a != 'x']")

        step = expression.steps[1]
        assert isinstance(step, Filter)
        assert step.predicate == Comparison(
            PathOperand((Field("a"),)), "!=", LiteralOperand("x")
        )


class TestSyntaxErrors:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "commands[",
            "commands[?c1 == 'git'",
            "items[?name == 'open]",
            "a..b",
            "a.",
            "items[x]",
            "items[?'git']",
            "items[?a[]]",
            "items[?a[?b]]",
            "a b",
        ],
    )
    def test_invalid_expressions_raise(self, text: str) -> None:
        with pytest.raises(ExpressionSyntaxError):
            _ = compile_expression(text)

    def test_error_carries_expression_and_position(self) -> None:
        with pytest.raises(ExpressionSyntaxError, match="Unexpected character") as exc_info:
            _ = compile_expression("a b")

        assert exc_info.value.expression == "a b"
        assert exc_info.value.position == 2
