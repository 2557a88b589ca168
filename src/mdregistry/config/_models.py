# pyright: reportExplicitAny=false, reportAny=false
"""Configuration models.

Sources are merged lowest to highest: built-in defaults, ``mdregistry.toml``,
``MDREGISTRY_SECTION__KEY`` environment variables, explicit overrides.
"""

from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar, Self

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from mdregistry.aggregation import DEFAULT_FAILURE_THRESHOLD
from mdregistry.exceptions import ConfigError

from ._loader import deep_merge, parse_env_vars, read_toml_file

CONFIG_FILENAME = "mdregistry.toml"


class LogLevel(StrEnum):
    """Log level threshold values."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.WARNING
    format: LogFormat = LogFormat.TEXT
    file: str = ""


class OutputConfig(BaseModel):
    """Serialization settings for rendered output."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    json_indent: int = Field(default=2, ge=0)
    yaml_indent: int = Field(default=2, ge=2, le=9)
    markdown_title_field: str = "title"


class AggregationConfig(BaseModel):
    """Aggregator settings.

    Attributes:
        failure_threshold: Consecutive dataset failures that open the breaker.
        circuit_breaker: Disable to always attempt every dataset.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    failure_threshold: int = Field(default=DEFAULT_FAILURE_THRESHOLD, ge=1)
    circuit_breaker: bool = True


class TemplatesConfig(BaseModel):
    """Template syntax settings."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    single_brace: bool = False


class Config(BaseModel):
    """Immutable, typed configuration.

    Use ``from_dict``, ``from_file`` or ``load`` rather than the constructor.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    templates: TemplatesConfig = Field(default_factory=TemplatesConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create configuration from a dictionary, filling in defaults.

        Raises:
            ConfigError: If a value fails validation.
        """
        try:
            return cls.model_validate(data)
        except pydantic.ValidationError as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigError(msg) from e

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Load configuration from one TOML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigError: If a value fails validation.
        """
        return cls.from_dict(read_toml_file(path))

    @classmethod
    def load(
        cls,
        *,
        config_path: Path | None = None,
        search_dir: Path | None = None,
        include_env: bool = True,
        overrides: dict[str, Any] | None = None,
    ) -> Self:
        """Load merged configuration from all sources.

        Args:
            config_path: Explicit config file; it must exist.
            search_dir: Directory searched for ``mdregistry.toml`` when no
                explicit path is given. Defaults to the working directory.
            include_env: Merge ``MDREGISTRY_SECTION__KEY`` variables.
            overrides: Highest-precedence values (e.g. from the CLI).

        Raises:
            FileNotFoundError: If ``config_path`` does not exist.
            ConfigLoadError: If a file cannot be parsed.
            ConfigError: If the merged values fail validation.
        """
        merged: dict[str, Any] = {}

        if config_path is not None:
            merged = deep_merge(merged, read_toml_file(config_path))
        else:
            candidate = (search_dir or Path.cwd()) / CONFIG_FILENAME
            if candidate.is_file():
                merged = deep_merge(merged, read_toml_file(candidate))

        if include_env:
            merged = deep_merge(merged, parse_env_vars())

        if overrides:
            merged = deep_merge(merged, overrides)

        return cls.from_dict(merged)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key (``"output.json_indent"``)."""
        current: Any = self.model_dump(mode="json")
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def to_dict(self) -> dict[str, Any]:
        """Return the configuration as a plain dictionary."""
        return self.model_dump(mode="json")
