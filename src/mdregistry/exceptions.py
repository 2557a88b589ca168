"""mdregistry exceptions."""

from typing import Any


class MdRegistryError(Exception):
    """Base exception for mdregistry errors."""


# =============================================================================
# Validation Exceptions
# =============================================================================


class ValidationError(MdRegistryError, ValueError):
    """Base exception for malformed input to a factory or builder.

    Attributes:
        field: The field that failed validation (if applicable).
        value: The invalid value.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,  # pyright: ignore[reportAny,reportExplicitAny]
    ) -> None:
        """Initialize with error message and validation context.

        Args:
            message: Human-readable error message.
            field: The field that failed validation.
            value: The invalid value.
        """
        super().__init__(message)
        self.field: str | None = field
        self.value: Any = value  # pyright: ignore[reportExplicitAny]


class RuleValidationError(ValidationError):
    """Raised when a derivation rule is constructed from invalid input."""


class IRValidationError(ValidationError):
    """Raised when a template IR violates one of its invariants."""


class StructureValidationError(ValidationError):
    """Raised when a structure does not match its declared template structure.

    Attributes:
        path: Dotted location inside the structure where validation failed.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        field: str | None = None,
        value: Any = None,  # pyright: ignore[reportAny,reportExplicitAny]
    ) -> None:
        """Initialize with error message and structure location."""
        super().__init__(message, field=field, value=value)
        self.path: str = path


class SchemaError(ValidationError):
    """Raised when a schema carries a malformed directive.

    Attributes:
        directive: The directive key that was malformed (e.g. ``x-template``).
        path: Dotted path of the schema property carrying the directive.
    """

    def __init__(
        self,
        message: str,
        *,
        directive: str | None = None,
        path: str = "",
        value: Any = None,  # pyright: ignore[reportAny,reportExplicitAny]
    ) -> None:
        """Initialize with error message and schema location."""
        super().__init__(message, field=directive, value=value)
        self.directive: str | None = directive
        self.path: str = path


# =============================================================================
# Path Resolution Exceptions
# =============================================================================


class PathResolutionError(MdRegistryError, KeyError):
    """Raised when a derivation or variable path does not resolve.

    Attributes:
        path: The path or name that could not be resolved.
    """

    def __init__(self, message: str, *, path: str) -> None:
        """Initialize with error message and the offending path."""
        super().__init__(message)
        self.path: str = path

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0])


class VariableNotFoundError(PathResolutionError):
    """Raised when a placeholder name has no binding in a template context."""

    def __init__(self, message: str, *, name: str) -> None:
        """Initialize with error message and the unresolved name."""
        super().__init__(message, path=name)
        self.name: str = name


class FrontmatterPartNotFoundError(PathResolutionError):
    """Raised when no schema property is marked with ``x-frontmatter-part``."""

    def __init__(self, message: str, *, schema_path: str = "") -> None:
        """Initialize with error message and the schema location."""
        super().__init__(message, path="x-frontmatter-part")
        self.schema_path: str = schema_path


# =============================================================================
# Expression Exceptions
# =============================================================================


class ExpressionSyntaxError(MdRegistryError):
    """Raised when a path expression cannot be parsed.

    Attributes:
        expression: The expression text.
        position: Character offset where parsing failed.
    """

    def __init__(self, message: str, *, expression: str, position: int) -> None:
        """Initialize with error message and parse location."""
        super().__init__(message)
        self.expression: str = expression
        self.position: int = position


# =============================================================================
# File Exceptions
# =============================================================================


class FileError(MdRegistryError):
    """Base exception for reader and writer collaborators.

    Attributes:
        path: The path that caused the error.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and file context."""
        super().__init__(message)
        self.path: str = path
        self.cause: Exception | None = cause


class TemplateFileNotFoundError(FileError, FileNotFoundError):
    """Raised when a template file cannot be found or read."""


class FileDecodeError(FileError):
    """Raised when a file is not valid UTF-8 text."""


class OutputWriteError(FileError):
    """Raised when rendered output cannot be written."""


# =============================================================================
# Render Exceptions
# =============================================================================


class RenderError(MdRegistryError):
    """Base exception for template rendering failures."""


class UnresolvedPlaceholderError(RenderError):
    """Raised when a placeholder has no binding in the rendering context.

    Attributes:
        name: The placeholder name.
        template_path: Template the placeholder appeared in, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        name: str,
        template_path: str | None = None,
    ) -> None:
        """Initialize with error message and placeholder context."""
        super().__init__(message)
        self.name: str = name
        self.template_path: str | None = template_path


class MissingItemsError(RenderError):
    """Raised when a template uses ``{@items}`` but no items are available."""


class TemplateSyntaxError(RenderError):
    """Raised when a structured template cannot be parsed.

    Attributes:
        template_path: Path of the template that failed to parse.
        cause: The underlying parser exception.
    """

    def __init__(
        self,
        message: str,
        *,
        template_path: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and template context."""
        super().__init__(message)
        self.template_path: str = template_path
        self.cause: Exception | None = cause


# =============================================================================
# Aggregation Exceptions
# =============================================================================


class AggregationError(MdRegistryError):
    """Base exception for aggregation failures."""


class CircuitOpenError(AggregationError):
    """Raised when an Aggregator's circuit breaker is open.

    Attributes:
        failures: Consecutive failures recorded when the breaker opened.
    """

    def __init__(self, message: str, *, failures: int) -> None:
        """Initialize with error message and failure count."""
        super().__init__(message)
        self.failures: int = failures


class InvalidRuleExpressionError(AggregationError):
    """Raised when a derivation rule's source expression is malformed.

    Attributes:
        expression: The source expression.
        target_path: The rule's target path.
    """

    def __init__(self, message: str, *, expression: str, target_path: str) -> None:
        """Initialize with error message and rule context."""
        super().__init__(message)
        self.expression: str = expression
        self.target_path: str = target_path


class MergeError(AggregationError):
    """Raised when derived fields cannot be merged into a base structure.

    Attributes:
        target_path: The derived field's target path.
    """

    def __init__(self, message: str, *, target_path: str) -> None:
        """Initialize with error message and target path."""
        super().__init__(message)
        self.target_path: str = target_path


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(MdRegistryError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: str | None = path
        self.line: int | None = line
        self.column: int | None = column
