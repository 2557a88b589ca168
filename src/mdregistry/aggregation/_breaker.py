"""Consecutive-failure circuit breaker owned by one Aggregator."""

from dataclasses import dataclass

from mdregistry.exceptions import CircuitOpenError, ValidationError

DEFAULT_FAILURE_THRESHOLD = 5


@dataclass(frozen=True, slots=True)
class Closed:
    """Attempts are allowed; ``count`` consecutive failures so far."""

    count: int = 0


@dataclass(frozen=True, slots=True)
class Open:
    """Attempts are refused until the owner is recreated."""

    failures: int


type BreakerState = Closed | Open


class CircuitBreaker:
    """A small state machine: ``Closed(count)`` moves to ``Open`` at the threshold.

    Not safe for unsynchronized concurrent use.
    """

    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        *,
        enabled: bool = True,
    ) -> None:
        if failure_threshold < 1:
            raise ValidationError(
                "Failure threshold must be at least 1",
                field="failure_threshold",
                value=failure_threshold,
            )
        self._threshold: int = failure_threshold
        self._enabled: bool = enabled
        self._state: BreakerState = Closed()

    @classmethod
    def disabled(cls) -> "CircuitBreaker":
        """Return a breaker that stays in ``Closed(0)`` forever."""
        return cls(enabled=False)

    @property
    def state(self) -> BreakerState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def failure_threshold(self) -> int:
        return self._threshold

    @property
    def is_open(self) -> bool:
        return isinstance(self._state, Open)

    def check(self) -> None:
        """Raise CircuitOpenError when the breaker is open."""
        match self._state:
            case Open(failures=failures):
                raise CircuitOpenError(
                    f"Circuit breaker is open after {failures} consecutive failures",
                    failures=failures,
                )
            case Closed():
                return

    def record_success(self) -> None:
        match self._state:
            case Closed():
                self._state = Closed()
            case Open():
                return

    def record_failure(self) -> BreakerState:
        """Count one failure and return the resulting state."""
        if not self._enabled:
            return self._state
        match self._state:
            case Closed(count=count):
                count += 1
                self._state = Open(failures=count) if count >= self._threshold else Closed(count)
            case Open():
                pass
        return self._state
