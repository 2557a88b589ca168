"""Shared CLI utilities: exit codes and error reporting."""

from enum import IntEnum
from typing import TYPE_CHECKING, Never

from rich.markup import escape

from mdregistry.exceptions import (
    AggregationError,
    ConfigError,
    ExpressionSyntaxError,
    FileError,
    FrontmatterPartNotFoundError,
    RenderError,
    SchemaError,
    TemplateFileNotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from rich.console import Console


class ExitCode(IntEnum):
    """Exit codes for mdregistry commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    IO_ERROR = 4
    RENDER_ERROR = 5


def exit_code_for(error: Exception) -> ExitCode:
    """Map an exception to the exit code reported for it."""
    match error:
        case (
            TemplateFileNotFoundError()
            | FrontmatterPartNotFoundError()
            | FileNotFoundError()
            | FileError(cause=FileNotFoundError())
        ):
            return ExitCode.NOT_FOUND
        case FileError() | OSError():
            return ExitCode.IO_ERROR
        case ConfigError() | SchemaError():
            return ExitCode.LOAD_ERROR
        case ValidationError() | ExpressionSyntaxError():
            return ExitCode.VALIDATION_ERROR
        case RenderError() | AggregationError():
            return ExitCode.RENDER_ERROR
        case _:
            return ExitCode.RENDER_ERROR


def get_error_console() -> "Console":
    """Get a Rich console configured for error output to stderr."""
    from rich.console import Console

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.RENDER_ERROR,
    *,
    console: "Console | None" = None,
) -> Never:
    """Print an error message and exit with the given code.

    Raises:
        SystemExit: Always raised with ``code``.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {escape(message)}", markup=True, highlight=False)
    raise SystemExit(code)
