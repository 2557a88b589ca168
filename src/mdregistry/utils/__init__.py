"""Shared utilities for mdregistry."""

from ._logging import AppendFileLogger, create_logger, create_null_logger
from ._values import (
    Scalar,
    Value,
    dedupe,
    flatten,
    freeze,
    has_value,
    identity_key,
    is_mapping,
    is_sequence,
    thaw,
)

__all__ = [
    "AppendFileLogger",
    "Scalar",
    "Value",
    "create_logger",
    "create_null_logger",
    "dedupe",
    "flatten",
    "freeze",
    "has_value",
    "identity_key",
    "is_mapping",
    "is_sequence",
    "thaw",
]
