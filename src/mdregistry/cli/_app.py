"""The command-line interface for mdregistry."""

from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from ._commands import build, schema
from ._context import CLIContext

_HELP = "Build registries from markdown front matter."


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Create the CLI application.

    Global options are parsed by ``app.meta``; invoke that to run with them.

    Args:
        console: Console for command output.
        error_console: Console for errors.
        exit_on_error: Exit on argument parsing errors.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="mdregistry",
        help=_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )
    _ = app.command(build)
    _ = app.command(schema)

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        verbose: Annotated[bool, Parameter(help="Log at debug level")] = False,
    ) -> None:
        """Run mdregistry with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            verbose: Log at debug level.
        """
        CLIContext.set_current(
            CLIContext(console=console, error_console=error_console, verbose=verbose)
        )
        try:
            app(tokens)
        finally:
            CLIContext.reset()

    return app


def main() -> None:
    """Default entrypoint for the ``mdregistry`` CLI."""
    app = create_app()
    app.meta()
