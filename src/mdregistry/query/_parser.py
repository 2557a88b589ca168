"""Parser for path expressions.

Path expressions are a small JMESPath-flavoured language used by derivation
rules (``x-derived-from``) and item filters (``x-jmespath-filter``):

    tools.commands[].c1          field access, flatten-and-project
    commands[?c1 == 'git'].c2    filter then project
    [?id.level=='req']           filter applied to the root array
    items[0].name                index

Predicates support ``== != < <= > >=``, bare paths (truthiness), ``!``,
``&&``, ``||`` and parentheses. Literals are ``'raw strings'``, ```json```,
numbers, ``true``, ``false`` and ``null``; ``"double quotes"`` delimit field
names that are not plain identifiers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import orjson

from mdregistry.exceptions import ExpressionSyntaxError

type ComparisonOperator = Literal["==", "!=", "<", "<=", ">", ">="]

_COMPARISON_OPERATORS: tuple[ComparisonOperator, ...] = ("==", "!=", "<=", ">=", "<", ">")
_KEYWORD_LITERALS: dict[str, object] = {"true": True, "false": False, "null": None}


# =============================================================================
# Path Steps
# =============================================================================


@dataclass(frozen=True, slots=True)
class Field:
    """Access a key of a mapping."""

    name: str


@dataclass(frozen=True, slots=True)
class Index:
    """Access one element of an array (negative indexes count from the end)."""

    position: int


@dataclass(frozen=True, slots=True)
class Flatten:
    """Flatten one level of nesting and project the rest of the path."""


@dataclass(frozen=True, slots=True)
class Filter:
    """Keep array elements matching a predicate and project the rest of the path."""

    predicate: Predicate


type Step = Field | Index | Flatten | Filter


# =============================================================================
# Predicates
# =============================================================================


@dataclass(frozen=True, slots=True)
class PathOperand:
    """A field path evaluated against the current array element."""

    steps: tuple[Field | Index, ...]


@dataclass(frozen=True, slots=True)
class LiteralOperand:
    """A constant value."""

    value: Any  # pyright: ignore[reportExplicitAny]


type Operand = PathOperand | LiteralOperand


@dataclass(frozen=True, slots=True)
class Comparison:
    """``left OP right``; with no operator the left operand is tested for truthiness."""

    left: Operand
    operator: ComparisonOperator | None = None
    right: Operand | None = None


@dataclass(frozen=True, slots=True)
class Not:
    operand: Predicate


@dataclass(frozen=True, slots=True)
class And:
    left: Predicate
    right: Predicate


@dataclass(frozen=True, slots=True)
class Or:
    left: Predicate
    right: Predicate


type Predicate = Comparison | Not | And | Or


@dataclass(frozen=True, slots=True)
class Expression:
    """A compiled path expression.

    Attributes:
        text: The source text the expression was compiled from.
        steps: Path steps applied left to right.
    """

    text: str
    steps: tuple[Step, ...]


# =============================================================================
# Parser
# =============================================================================


class _Parser:
    """Recursive-descent parser over the expression text."""

    def __init__(self, text: str) -> None:
        self.text: str = text
        self.pos: int = 0

    # -- helpers -------------------------------------------------------------

    def _error(self, message: str) -> ExpressionSyntaxError:
        return ExpressionSyntaxError(
            f"{message} at position {self.pos} in expression {self.text!r}",
            expression=self.text,
            position=self.pos,
        )

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _peek(self, token: str) -> bool:
        return self.text.startswith(token, self.pos)

    def _accept(self, token: str) -> bool:
        self._skip_ws()
        if self._peek(token):
            self.pos += len(token)
            return True
        return False

    def _expect(self, token: str) -> None:
        if not self._accept(token):
            raise self._error(f"Expected {token!r}")

    def _at_end(self) -> bool:
        self._skip_ws()
        return self.pos >= len(self.text)

    # -- paths ---------------------------------------------------------------

    def parse_expression(self) -> Expression:
        if self._at_end():
            raise self._error("Empty expression")
        steps = self._parse_steps(allow_projection=True)
        if not self._at_end():
            raise self._error(f"Unexpected character {self.text[self.pos]!r}")
        return Expression(text=self.text, steps=steps)

    def _parse_steps(self, *, allow_projection: bool) -> tuple[Step, ...]:
        steps: list[Step] = []
        self._skip_ws()
        if self._peek("["):
            steps.extend(self._parse_suffixes(allow_projection=allow_projection))
        else:
            steps.append(Field(self._parse_identifier()))
            steps.extend(self._parse_suffixes(allow_projection=allow_projection))

        while True:
            self._skip_ws()
            if not self._peek(".") or self._peek(".."):
                break
            self.pos += 1
            steps.append(Field(self._parse_identifier()))
            steps.extend(self._parse_suffixes(allow_projection=allow_projection))

        if not steps:
            raise self._error("Expected a field name or '['")
        return tuple(steps)

    def _parse_identifier(self) -> str:
        self._skip_ws()
        if self._peek('"'):
            value = self._parse_quoted('"')
            if not isinstance(value, str) or not value:
                raise self._error("Quoted identifier must be a non-empty string")
            return value

        start = self.pos
        while self.pos < len(self.text) and (
            self.text[self.pos].isalnum() or self.text[self.pos] in "_-$"
        ):
            self.pos += 1
        if start == self.pos:
            raise self._error("Expected a field name")
        return self.text[start : self.pos]

    def _parse_suffixes(self, *, allow_projection: bool) -> list[Step]:
        suffixes: list[Step] = []
        while True:
            self._skip_ws()
            if not self._peek("["):
                return suffixes
            self.pos += 1
            self._skip_ws()

            if self._peek("]"):
                if not allow_projection:
                    raise self._error("Projection is not allowed inside a filter")
                self.pos += 1
                suffixes.append(Flatten())
            elif self._peek("?"):
                if not allow_projection:
                    raise self._error("Nested filters are not supported")
                self.pos += 1
                predicate = self._parse_or()
                self._expect("]")
                suffixes.append(Filter(predicate))
            else:
                suffixes.append(Index(self._parse_int()))
                self._expect("]")

    def _parse_int(self) -> int:
        self._skip_ws()
        start = self.pos
        if self._peek("-"):
            self.pos += 1
        while self.pos < len(self.text) and self.text[self.pos].isdigit():
            self.pos += 1
        token = self.text[start : self.pos]
        if token in {"", "-"}:
            raise self._error("Expected an index, '?' or ']'")
        return int(token)

    # -- predicates ----------------------------------------------------------

    def _parse_or(self) -> Predicate:
        left = self._parse_and()
        while self._accept("||"):
            left = Or(left, self._parse_and())
        return left

    def _parse_and(self) -> Predicate:
        left = self._parse_not()
        while self._accept("&&"):
            left = And(left, self._parse_not())
        return left

    def _parse_not(self) -> Predicate:
        self._skip_ws()
        if self._peek("!") and not self._peek("!="):
            self.pos += 1
            return Not(self._parse_not())
        if self._accept("("):
            inner = self._parse_or()
            self._expect(")")
            return inner
        return self._parse_comparison()

    def _parse_comparison(self) -> Comparison:
        left = self._parse_operand()
        self._skip_ws()
        for operator in _COMPARISON_OPERATORS:
            if self._peek(operator):
                self.pos += len(operator)
                return Comparison(left, operator, self._parse_operand())
        if isinstance(left, LiteralOperand):
            raise self._error("Expected a comparison operator after literal")
        return Comparison(left)

    def _parse_operand(self) -> Operand:
        self._skip_ws()
        if self.pos >= len(self.text):
            raise self._error("Unexpected end of expression")

        char = self.text[self.pos]
        if char in "'`":
            return LiteralOperand(self._parse_quoted(char))
        if char.isdigit() or (char == "-" and self.text[self.pos + 1 : self.pos + 2].isdigit()):
            return LiteralOperand(self._parse_number())

        for keyword, value in _KEYWORD_LITERALS.items():
            end = self.pos + len(keyword)
            if self._peek(keyword) and not (
                end < len(self.text) and (self.text[end].isalnum() or self.text[end] in "_-")
            ):
                self.pos = end
                return LiteralOperand(value)

        steps = self._parse_steps(allow_projection=False)
        # _parse_steps with allow_projection=False only yields Field/Index
        return PathOperand(tuple(s for s in steps if isinstance(s, Field | Index)))

    def _parse_number(self) -> int | float:
        start = self.pos
        if self._peek("-"):
            self.pos += 1
        while self.pos < len(self.text) and (
            self.text[self.pos].isdigit() or self.text[self.pos] == "."
        ):
            self.pos += 1
        token = self.text[start : self.pos]
        try:
            return float(token) if "." in token else int(token)
        except ValueError:
            raise self._error(f"Invalid number {token!r}") from None

    def _parse_quoted(self, quote: str) -> object:
        """Parse a quoted token starting at the current position."""
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == "\\" and self.pos + 1 < len(self.text):
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            if char == quote:
                self.pos += 1
                raw = "".join(chars)
                if quote == "`":
                    try:
                        return orjson.loads(raw)
                    except orjson.JSONDecodeError:
                        # JMESPath treats an unparseable backtick literal as a string
                        return raw
                return raw
            chars.append(char)
            self.pos += 1
        raise self._error(f"Unterminated {quote} literal")


def compile_expression(text: str) -> Expression:
    """Compile expression text into an Expression.

    Args:
        text: The expression source.

    Returns:
        The compiled Expression.

    Raises:
        ExpressionSyntaxError: If the text is not a valid expression.
    """
    return _Parser(text).parse_expression()
