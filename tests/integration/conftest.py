import os
from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from mdregistry.cli import create_app


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run from an empty directory without MDREGISTRY_ variables."""
    for key in list(os.environ):
        if key.startswith("MDREGISTRY_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def mdregistry_cli_with_exit_code(console: Console) -> Callable[..., int]:
    """Create the CLI app for testing; the callable returns the exit code."""

    app = create_app(console=console, error_console=console, exit_on_error=False)

    def _run(*args: str) -> int:
        """Run the CLI with global options and return the exit code (0 if no SystemExit)."""

        try:
            app.meta(list(args))
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run
