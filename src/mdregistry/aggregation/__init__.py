"""Cross-document aggregation: derivation rules and structured merging."""

from ._aggregator import AggregationResult, Aggregator
from ._breaker import (
    DEFAULT_FAILURE_THRESHOLD,
    BreakerState,
    CircuitBreaker,
    Closed,
    Open,
)
from ._rules import DerivationRule
from ._structured import (
    AggregatedStructure,
    MergeArrays,
    MergeStrategy,
    ReplaceValues,
    StructuredAggregator,
    TemplateStructure,
    analyze_template_structure,
)

__all__ = [
    "DEFAULT_FAILURE_THRESHOLD",
    "AggregatedStructure",
    "AggregationResult",
    "Aggregator",
    "BreakerState",
    "CircuitBreaker",
    "Closed",
    "DerivationRule",
    "MergeArrays",
    "MergeStrategy",
    "Open",
    "ReplaceValues",
    "StructuredAggregator",
    "TemplateStructure",
    "analyze_template_structure",
]
