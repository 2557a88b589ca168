"""Derivation rules."""

from dataclasses import dataclass

from mdregistry.exceptions import RuleValidationError


@dataclass(frozen=True, slots=True)
class DerivationRule:
    """Maps a source path expression to a dotted target path.

    Instances are built through ``create``, which validates its input; a rule
    that exists is always well formed.

    Attributes:
        source_expression: Path expression evaluated against each dataset.
        target_path: Dot-separated path the derived values are stored at.
        unique: Drop later duplicates, keeping first occurrences.
    """

    source_expression: str
    target_path: str
    unique: bool = False

    @classmethod
    def create(
        cls,
        source_expression: str,
        target_path: str,
        unique: bool = False,  # noqa: FBT001, FBT002
    ) -> "DerivationRule":
        """Create a validated derivation rule.

        Args:
            source_expression: Non-empty source path expression.
            target_path: Non-empty dotted target path without empty segments.
            unique: Whether derived values are deduplicated.

        Returns:
            The DerivationRule.

        Raises:
            RuleValidationError: If either string is empty or the target path
                has an empty segment.
        """
        if not source_expression or not source_expression.strip():
            raise RuleValidationError(
                "Source path expression must not be empty",
                field="source_expression",
                value=source_expression,
            )
        if not target_path or not target_path.strip():
            raise RuleValidationError(
                "Target path must not be empty",
                field="target_path",
                value=target_path,
            )
        if any(not segment.strip() for segment in target_path.split(".")):
            raise RuleValidationError(
                f"Target path has an empty segment: {target_path!r}",
                field="target_path",
                value=target_path,
            )
        return cls(
            source_expression=source_expression.strip(),
            target_path=target_path.strip(),
            unique=unique,
        )

    @property
    def target_segments(self) -> tuple[str, ...]:
        """The target path split on dots."""
        return tuple(self.target_path.split("."))
