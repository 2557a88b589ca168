"""Evaluation of compiled path expressions against generic value trees.

Evaluation is total. A missing field, a step applied to the wrong kind of
node, or a ``None``/empty-string leaf contributes no value for that branch;
it never raises. Matches are returned in source order with duplicates kept.
"""

from collections.abc import Iterator, Mapping
from typing import Any

from mdregistry.utils import is_mapping, is_sequence

from ._parser import (
    And,
    Comparison,
    Expression,
    Field,
    Filter,
    Flatten,
    Index,
    LiteralOperand,
    Not,
    Operand,
    Or,
    PathOperand,
    Predicate,
    Step,
    compile_expression,
)


def evaluate(expression: Expression | str, data: Any) -> list[Any]:  # pyright: ignore[reportExplicitAny,reportAny]
    """Evaluate an expression and return the matched leaf values.

    Args:
        expression: A compiled Expression or expression text.
        data: The value tree to query.

    Returns:
        Matched values in source order, duplicates included. List-valued
        leaves are returned as single values.

    Raises:
        ExpressionSyntaxError: If ``expression`` is text that does not compile.
    """
    if isinstance(expression, str):
        expression = compile_expression(expression)
    return [value for value in _walk(data, expression.steps) if _is_present(value)]


def _is_present(value: object) -> bool:
    return value is not None and value != ""


def _walk(node: Any, steps: tuple[Step, ...]) -> Iterator[Any]:  # pyright: ignore[reportExplicitAny,reportAny]
    if not steps:
        yield node
        return

    step, rest = steps[0], steps[1:]
    match step:
        case Field(name=name):
            if is_mapping(node) and name in node:
                yield from _walk(node[name], rest)
        case Index(position=position):
            if is_sequence(node) and -len(node) <= position < len(node):
                yield from _walk(node[position], rest)
        case Flatten():
            if not is_sequence(node):
                return
            for element in node:
                if is_sequence(element):
                    for inner in element:
                        yield from _walk(inner, rest)
                else:
                    yield from _walk(element, rest)
        case Filter(predicate=predicate):
            if not is_sequence(node):
                return
            for element in node:
                if _truthy(_test(predicate, element)):
                    yield from _walk(element, rest)


# =============================================================================
# Predicates
# =============================================================================


def _test(predicate: Predicate, element: Any) -> Any:  # pyright: ignore[reportExplicitAny,reportAny]
    match predicate:
        case Comparison(left=left, operator=None) | Comparison(left=left, right=None):
            return _operand_value(left, element)
        case Comparison(left=left, operator=operator, right=right) if (
            operator is not None and right is not None
        ):
            return _compare(
                _operand_value(left, element), operator, _operand_value(right, element)
            )
        case Not(operand=operand):
            return not _truthy(_test(operand, element))
        case And(left=left, right=right):
            first = _test(left, element)
            return _test(right, element) if _truthy(first) else first
        case Or(left=left, right=right):
            first = _test(left, element)
            return first if _truthy(first) else _test(right, element)


def _operand_value(operand: Operand, element: Any) -> Any:  # pyright: ignore[reportExplicitAny,reportAny]
    match operand:
        case LiteralOperand(value=value):
            return value
        case PathOperand(steps=steps):
            node = element
            for step in steps:
                match step:
                    case Field(name=name):
                        if not (is_mapping(node) and name in node):
                            return None
                        node = node[name]
                    case Index(position=position):
                        if not (is_sequence(node) and -len(node) <= position < len(node)):
                            return None
                        node = node[position]
            return node


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _equal(left: Any, right: Any) -> bool:  # pyright: ignore[reportExplicitAny,reportAny]
    # Booleans never equal numbers
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if is_mapping(left) and is_mapping(right):
        return dict(left) == dict(right)
    if is_sequence(left) and is_sequence(right):
        return len(left) == len(right) and all(
            _equal(a, b) for a, b in zip(left, right, strict=True)
        )
    return left == right


def _compare(left: Any, operator: str | None, right: Any) -> bool:  # pyright: ignore[reportExplicitAny,reportAny]
    if operator == "==":
        return _equal(left, right)
    if operator == "!=":
        return not _equal(left, right)

    comparable = (_is_number(left) and _is_number(right)) or (
        isinstance(left, str) and isinstance(right, str)
    )
    if not comparable:
        return False
    match operator:
        case "<":
            return left < right
        case "<=":
            return left <= right
        case ">":
            return left > right
        case ">=":
            return left >= right
        case _:
            return False


def _truthy(value: object) -> bool:
    """JMESPath truthiness: empty containers, empty strings, false and null are false."""
    if value is None or value is False:
        return False
    if isinstance(value, str | Mapping) or is_sequence(value):
        return len(value) > 0  # pyright: ignore[reportArgumentType]
    return True
