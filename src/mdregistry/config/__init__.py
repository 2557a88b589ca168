"""Configuration loading for mdregistry."""

from ._loader import deep_merge, parse_env_vars, parse_string_value, read_toml_file
from ._models import (
    CONFIG_FILENAME,
    AggregationConfig,
    Config,
    LogFormat,
    LoggingConfig,
    LogLevel,
    OutputConfig,
    TemplatesConfig,
)

__all__ = [
    "CONFIG_FILENAME",
    "AggregationConfig",
    "Config",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "OutputConfig",
    "TemplatesConfig",
    "deep_merge",
    "parse_env_vars",
    "parse_string_value",
    "read_toml_file",
]
