"""Cross-document aggregation with derivation rules.

The Aggregator evaluates every derivation rule against every dataset in input
order, optionally deduplicates, and deep-merges the derived fields into a
base structure. It owns a circuit breaker that counts consecutive per-dataset
failures (a dataset that is not a mapping); once open, every later call
raises ``CircuitOpenError`` until a new Aggregator is created.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from mdregistry.exceptions import (
    ExpressionSyntaxError,
    InvalidRuleExpressionError,
    MergeError,
)
from mdregistry.query import Expression, compile_expression, evaluate
from mdregistry.utils import create_null_logger, dedupe, freeze, has_value, is_mapping, thaw

from ._breaker import DEFAULT_FAILURE_THRESHOLD, CircuitBreaker, Open

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from ._rules import DerivationRule


@dataclass(frozen=True, slots=True)
class AggregationResult:
    """Derived values per target path.

    Attributes:
        derived_fields: Target path to derived values, in rule order.
        base: The base structure passed to ``aggregate``, if any.
    """

    derived_fields: Mapping[str, tuple[Any, ...]] = field(  # pyright: ignore[reportExplicitAny]
        default_factory=lambda: MappingProxyType({})
    )
    base: Mapping[str, Any] | None = None  # pyright: ignore[reportExplicitAny]

    def get(self, target_path: str) -> tuple[Any, ...]:  # pyright: ignore[reportExplicitAny]
        """Return the values derived for ``target_path`` (empty if none)."""
        return self.derived_fields.get(target_path, ())


class Aggregator:
    """Merges datasets through derivation rules.

    One instance per aggregation batch: the circuit breaker is per-instance
    mutable state and is not safe for unsynchronized concurrent use.
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._breaker: CircuitBreaker = breaker
        self._logger: FilteringBoundLogger = logger or create_null_logger()

    @classmethod
    def create(
        cls,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        logger: FilteringBoundLogger | None = None,
    ) -> Aggregator:
        """Create an Aggregator whose breaker opens at ``failure_threshold``."""
        return cls(CircuitBreaker(failure_threshold), logger)

    @classmethod
    def create_with_disabled_circuit_breaker(
        cls,
        logger: FilteringBoundLogger | None = None,
    ) -> Aggregator:
        """Create an Aggregator whose breaker stays ``Closed(0)`` permanently."""
        return cls(CircuitBreaker.disabled(), logger)

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def aggregate(
        self,
        datasets: Sequence[Any],  # pyright: ignore[reportExplicitAny]
        rules: Sequence[DerivationRule],
        base: Mapping[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    ) -> AggregationResult:
        """Evaluate every rule against every dataset.

        Matches are concatenated in dataset order, then in match order within
        a dataset. Rules marked ``unique`` keep only the first occurrence of
        each of their own matches. Rules sharing a target are concatenated in
        rule order. Fields missing from a dataset contribute nothing.

        Args:
            datasets: Parsed front matter, one value per source document.
            rules: Derivation rules, applied in order.
            base: Optional base structure carried on the result.

        Returns:
            The AggregationResult.

        Raises:
            CircuitOpenError: If the breaker is open or opens during this call.
            InvalidRuleExpressionError: If a rule's source expression does not
                compile.
        """
        self._breaker.check()

        compiled = [(rule, self._compile(rule)) for rule in rules]
        collected: list[list[Any]] = [[] for _ in compiled]  # pyright: ignore[reportExplicitAny]

        for position, dataset in enumerate(datasets):
            if not is_mapping(dataset):
                state = self._breaker.record_failure()
                self._logger.warning(
                    "dataset_skipped",
                    position=position,
                    reason="not a mapping",
                    breaker_state=type(state).__name__,
                )
                if isinstance(state, Open):
                    self._logger.error("circuit_breaker_opened", failures=state.failures)
                self._breaker.check()
                continue

            self._breaker.record_success()
            for values, (_, expression) in zip(collected, compiled, strict=True):
                values.extend(evaluate(expression, dataset))

        merged: dict[str, list[Any]] = {}  # pyright: ignore[reportExplicitAny]
        for values, (rule, _) in zip(collected, compiled, strict=True):
            if rule.unique:
                values = dedupe(values)
            merged.setdefault(rule.target_path, []).extend(values)
            self._logger.debug(
                "rule_evaluated",
                source=rule.source_expression,
                target=rule.target_path,
                unique=rule.unique,
                count=len(values),
            )

        return AggregationResult(
            derived_fields=MappingProxyType(
                {target: freeze(values) for target, values in merged.items()}
            ),
            base=freeze(base) if base is not None else None,
        )

    def merge_with_base(
        self,
        result: AggregationResult,
        base: Mapping[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    ) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Deep-merge derived fields into a base structure.

        Derived values are written at their dotted target paths, creating
        intermediate objects as needed. Existing base values are never
        overwritten, except a leaf at exactly the target path that lacks a
        value (missing, ``None`` or ``""``).

        Args:
            result: The aggregation result.
            base: The base structure; defaults to ``result.base``.

        Returns:
            A new plain dict; neither input is modified.

        Raises:
            MergeError: If an intermediate segment of a target path holds a
                non-object value.
        """
        source = base if base is not None else result.base
        merged: dict[str, Any] = thaw(source) if source is not None else {}  # pyright: ignore[reportExplicitAny]

        for target_path, values in result.derived_fields.items():
            segments = target_path.split(".")
            node = merged
            for depth, segment in enumerate(segments[:-1]):
                child = node.get(segment)
                if child is None:
                    child = node[segment] = {}
                elif not isinstance(child, dict):
                    prefix = ".".join(segments[: depth + 1])
                    raise MergeError(
                        f"Cannot merge {target_path!r}: {prefix!r} is not an object",
                        target_path=target_path,
                    )
                node = child  # pyright: ignore[reportUnknownVariableType]

            leaf = segments[-1]
            if has_value(node.get(leaf)):
                self._logger.debug("merge_kept_base_value", target=target_path)
                continue
            node[leaf] = thaw(values)

        return merged

    def _compile(self, rule: DerivationRule) -> Expression:
        try:
            return compile_expression(rule.source_expression)
        except ExpressionSyntaxError as e:
            raise InvalidRuleExpressionError(
                f"Invalid source expression for {rule.target_path!r}: {e}",
                expression=rule.source_expression,
                target_path=rule.target_path,
            ) from e
