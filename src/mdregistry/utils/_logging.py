"""structlog logger factories.

Loggers are built with ``structlog.wrap_logger`` and never touch the global
structlog configuration, so library code can be handed any logger (or the
null logger) without side effects.
"""

import logging
import sys
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Literal, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger, Processor

LogFormatType = Literal["json", "text"]

DEBUG_ENV = "MDREGISTRY_DEBUG"
LEVEL_ENV = "MDREGISTRY_LOG_LEVEL"


def resolve_log_level(level: str | None = None) -> int:
    """Pick the effective level.

    ``MDREGISTRY_DEBUG`` forces DEBUG. Otherwise ``level`` is used, then
    ``MDREGISTRY_LOG_LEVEL``; unknown names fall back to INFO.
    """
    if getenv(DEBUG_ENV):
        return logging.DEBUG
    name = level if level is not None else getenv(LEVEL_ENV, "info")
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _processors(log_format: LogFormatType) -> list["Processor"]:
    chain: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    match log_format:
        case "json":
            chain += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
        case "text":
            chain.append(structlog.dev.ConsoleRenderer(colors=False))
    return chain


class AppendFileLogger:
    """structlog sink that appends each rendered entry to a file.

    The file is opened and closed per entry, so a logger holds no handle and
    a rotated or deleted log file is recreated on the next entry.
    """

    def __init__(self, path: Path) -> None:
        self.path: Path = path

    def msg(self, message: str) -> None:
        with self.path.open("a", encoding="utf-8") as f:
            _ = f.write(message + "\n")

    log = debug = info = warn = warning = msg
    err = error = critical = exception = fatal = failure = msg


def create_logger(
    *,
    level: str | None = None,
    log_format: LogFormatType = "json",
    log_file: str = "",
    component: str = "",
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone structlog logger.

    Args:
        level: Level name (debug, info, warning, error). See
            ``resolve_log_level`` for the environment overrides.
        log_format: ``"json"`` for one JSON object per line, ``"text"`` for
            ``timestamp [level] event key=value`` lines.
        log_file: File appended to (parent directories are created); empty
            writes to stderr.
        component: Bound to every entry as ``component`` when non-empty.

    Returns:
        A FilteringBoundLogger.
    """
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        sink: AppendFileLogger | structlog.WriteLogger = AppendFileLogger(path)
    else:
        sink = structlog.WriteLogger(sys.stderr)

    logger = cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            sink,
            processors=_processors(log_format),
            wrapper_class=structlog.make_filtering_bound_logger(resolve_log_level(level)),
            context_class=dict,
        ),
    )
    return logger.bind(component=component) if component else logger


def create_null_logger() -> "FilteringBoundLogger":  # noqa: UP037
    """Create a logger that discards every event.

    Core services fall back to it when no logger is supplied.
    """
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.ReturnLogger(),
            processors=[],
            wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
            context_class=dict,
        ),
    )
