"""mdregistry command-line interface."""

from ._app import create_app, main
from ._commands import build, directive_table, schema
from ._context import CLIContext
from ._shared import ExitCode, exit_code_for, exit_with_error

__all__ = [
    "CLIContext",
    "ExitCode",
    "build",
    "create_app",
    "directive_table",
    "exit_code_for",
    "exit_with_error",
    "main",
    "schema",
]
