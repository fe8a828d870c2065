"""Configuration management for tfops using Pydantic models."""

import json
import logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tfops.errors import ConfigError, UnsupportedFormatError, UnsupportedGroupingError

CONFIG_FILENAME = ".tfops.json"


class GraphFormat(str, Enum):
    """Diagram grammars supported by ``plan-graph``."""
    GRAPHVIZ = "graphviz"
    MERMAID = "mermaid"
    PLANTUML = "plantuml"


class GroupBy(str, Enum):
    """Strategies for assigning graph nodes to grouping constructs."""
    MODULE = "module"
    ACTION = "action"
    RESOURCE_TYPE = "resource_type"


class SummaryFormat(str, Enum):
    """Output formats supported by ``summarize-plan``."""
    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"
    TABLE = "table"


class LogLevel(str, Enum):
    """Logging levels."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


_PYTHON_LEVELS = {
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}


def parse_graph_format(value: "GraphFormat | str") -> GraphFormat:
    """Return the :class:`GraphFormat` for ``value`` or raise UnsupportedFormatError."""
    if isinstance(value, GraphFormat):
        return value
    try:
        return GraphFormat(str(value).strip().lower())
    except ValueError:
        raise UnsupportedFormatError(str(value), [f.value for f in GraphFormat]) from None


def parse_group_by(value: "GroupBy | str") -> GroupBy:
    """Return the :class:`GroupBy` for ``value`` or raise UnsupportedGroupingError."""
    if isinstance(value, GroupBy):
        return value
    try:
        return GroupBy(str(value).strip().lower())
    except ValueError:
        raise UnsupportedGroupingError(str(value), [g.value for g in GroupBy]) from None


def parse_summary_format(value: "SummaryFormat | str") -> SummaryFormat:
    """Return the :class:`SummaryFormat` for ``value`` or raise UnsupportedFormatError."""
    if isinstance(value, SummaryFormat):
        return value
    try:
        return SummaryFormat(str(value).strip().lower())
    except ValueError:
        raise UnsupportedFormatError(str(value), [f.value for f in SummaryFormat]) from None


class LimitsConfig(BaseModel):
    """Safety bounds applied while loading and resolving pathological plans."""
    max_expression_depth: int = Field(alias="maxExpressionDepth", default=64)
    max_module_depth: int = Field(alias="maxModuleDepth", default=32)
    max_reference_depth: int = Field(alias="maxReferenceDepth", default=64)

    @field_validator("max_expression_depth", "max_module_depth", "max_reference_depth")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("limits must be >= 1")
        return v

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class GraphOptions(BaseModel):
    """Immutable options for one ``plan-graph`` run.

    ``format`` and ``group_by`` are checked on construction so that a bad value
    is reported before any plan file is read.
    """
    format: GraphFormat = GraphFormat.GRAPHVIZ
    group_by: GroupBy = GroupBy.MODULE
    no_data_sources: bool = False
    no_outputs: bool = False
    no_variables: bool = False
    no_locals: bool = False
    compact: bool = False
    verbose: bool = False

    @field_validator("format", mode="before")
    @classmethod
    def validate_format(cls, v):
        return parse_graph_format(v)

    @field_validator("group_by", mode="before")
    @classmethod
    def validate_group_by(cls, v):
        return parse_group_by(v)

    model_config = ConfigDict(frozen=True)


class SummaryOptions(BaseModel):
    """Immutable options for one ``summarize-plan`` run."""
    format: SummaryFormat = SummaryFormat.TEXT
    show_details: bool = False
    verbose: bool = False

    @field_validator("format", mode="before")
    @classmethod
    def validate_format(cls, v):
        return parse_summary_format(v)

    model_config = ConfigDict(frozen=True)


class GraphDefaults(BaseModel):
    """Project defaults for ``plan-graph`` options."""
    format: GraphFormat = GraphFormat.GRAPHVIZ
    group_by: GroupBy = Field(alias="groupBy", default=GroupBy.MODULE)
    no_data_sources: bool = Field(alias="noDataSources", default=False)
    no_outputs: bool = Field(alias="noOutputs", default=False)
    no_variables: bool = Field(alias="noVariables", default=False)
    no_locals: bool = Field(alias="noLocals", default=False)
    compact: bool = False

    model_config = ConfigDict(populate_by_name=True)


class SummaryDefaults(BaseModel):
    """Project defaults for ``summarize-plan`` options."""
    format: SummaryFormat = SummaryFormat.TEXT
    show_details: bool = Field(alias="showDetails", default=False)

    model_config = ConfigDict(populate_by_name=True)


class LoggingConfig(BaseModel):
    """Logging configuration section."""
    level: LogLevel = LogLevel.WARN

    @property
    def python_level(self) -> int:
        return _PYTHON_LEVELS[self.level]


class TfOpsConfig(BaseModel):
    """Complete tfops configuration model."""
    graph: GraphDefaults = Field(default_factory=GraphDefaults)
    summary: SummaryDefaults = Field(default_factory=SummaryDefaults)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="forbid")

    def graph_options(
        self,
        *,
        format: GraphFormat | str | None = None,
        group_by: GroupBy | str | None = None,
        no_data_sources: bool = False,
        no_outputs: bool = False,
        no_variables: bool = False,
        no_locals: bool = False,
        compact: bool = False,
        verbose: bool = False,
    ) -> GraphOptions:
        """Merge command-line values over the configured defaults.

        Exclusion and compact flags can only be switched on from the command
        line, so they are OR-ed with the defaults.
        """
        defaults = self.graph
        return GraphOptions(
            format=format if format is not None else defaults.format,
            group_by=group_by if group_by is not None else defaults.group_by,
            no_data_sources=no_data_sources or defaults.no_data_sources,
            no_outputs=no_outputs or defaults.no_outputs,
            no_variables=no_variables or defaults.no_variables,
            no_locals=no_locals or defaults.no_locals,
            compact=compact or defaults.compact,
            verbose=verbose,
        )

    def summary_options(
        self,
        *,
        format: SummaryFormat | str | None = None,
        show_details: bool = False,
        verbose: bool = False,
    ) -> SummaryOptions:
        """Merge command-line values over the configured summary defaults."""
        defaults = self.summary
        return SummaryOptions(
            format=format if format is not None else defaults.format,
            show_details=show_details or defaults.show_details,
            verbose=verbose,
        )


def load_config(config_path: str | Path | None = None) -> TfOpsConfig:
    """Load configuration from file with fallback to defaults.

    Args:
        config_path: Optional path to configuration file. If None, searches
                    current directory and parents for .tfops.json

    Returns:
        TfOpsConfig: Loaded and validated configuration

    Raises:
        ConfigError: If the file cannot be read or its content is invalid
    """
    if config_path is None:
        config_path = find_config_file()
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

    if config_path is None:
        return create_default_config()

    try:
        with open(config_path, encoding="utf-8") as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config file {config_path}: {e}") from e

    if not isinstance(config_data, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")

    try:
        return TfOpsConfig(**config_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find .tfops.json configuration file by searching up directory tree.

    Args:
        start_dir: Directory to start search from (default: current directory)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = Path(start_dir).resolve()

    while True:
        config_file = current / CONFIG_FILENAME
        if config_file.exists():
            return config_file

        parent = current.parent
        if parent == current:  # Reached root directory
            break
        current = parent

    return None


def create_default_config() -> TfOpsConfig:
    """Create default configuration with sensible defaults."""
    return TfOpsConfig()
