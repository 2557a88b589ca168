"""Path expression language used by derivation rules and item filters."""

from ._evaluator import evaluate
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
    Or,
    PathOperand,
    compile_expression,
)

__all__ = [
    "And",
    "Comparison",
    "Expression",
    "Field",
    "Filter",
    "Flatten",
    "Index",
    "LiteralOperand",
    "Not",
    "Or",
    "PathOperand",
    "compile_expression",
    "evaluate",
]
