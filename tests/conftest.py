"""Shared test fixtures for mdregistry tests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, cast

import pytest
import structlog
from rich.console import Console
from structlog.testing import CapturingLogger

from mdregistry.files import InMemoryFileSystem

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


@dataclass
class RecordingLogger:
    """A debug-level structlog logger that keeps every emitted event."""

    sink: CapturingLogger = field(default_factory=CapturingLogger)

    @property
    def logger(self) -> FilteringBoundLogger:
        return cast(
            "FilteringBoundLogger",
            structlog.wrap_logger(
                self.sink,
                processors=[],
                wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
                context_class=dict,
            ),
        )

    @property
    def events(self) -> list[str]:
        return [call.kwargs["event"] for call in self.sink.calls]

    def entries(self, event: str) -> list[dict[str, Any]]:  # pyright: ignore[reportExplicitAny]
        return [
            call.kwargs | {"level": call.method_name}
            for call in self.sink.calls
            if call.kwargs["event"] == event
        ]


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def memory_fs() -> InMemoryFileSystem:
    return InMemoryFileSystem()


@pytest.fixture
def console() -> Console:
    return Console(force_terminal=False, width=200, record=True)
