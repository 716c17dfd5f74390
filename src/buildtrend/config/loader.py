"""Configuration file loader.

Handles discovery, parsing and resolution of buildtrend YAML configuration.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from buildtrend.exceptions import ConfigurationError
from buildtrend.metrics import BUILT_IN_METRICS, MetricTemplate
from buildtrend.models import MetricSpec, MetricType
from buildtrend.quality_gate import BaselineConfig, GateMode, QualityGateConfig
from buildtrend.reporting import ReportOptions

# Pattern matches ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:-]+)(?::-([^}]*))?\}")

# Default config file names in priority order
CONFIG_FILE_NAMES = ["buildtrend.yaml", ".buildtrend.yaml", "buildtrend.yml", ".buildtrend.yml"]

DEFAULT_DATABASE_PATH = ".buildtrend/metrics.db"
DEFAULT_REFERENCE_BRANCH = "main"
MAX_METRIC_NAME_LENGTH = 64


class MetricConfig(BaseModel):
    """A tracked metric.

    Either declares its own ``type`` or inherits one from a built-in template
    named by ``builtin``; explicit fields override the template.
    """

    name: str = Field(..., pattern=r"^[a-z0-9-]+$", max_length=MAX_METRIC_NAME_LENGTH)
    type: MetricType | None = None
    unit: str | None = None
    description: str | None = None
    command: str | None = None
    builtin: str | None = None

    @model_validator(mode="after")
    def _type_or_builtin(self) -> "MetricConfig":
        if self.type is None and self.builtin is None:
            msg = f"Metric '{self.name}' needs a type or a builtin reference"
            raise ValueError(msg)
        return self

    def to_spec(self) -> MetricSpec:
        """Definition input for the store; requires a resolved type."""
        if self.type is None:
            msg = f"Metric '{self.name}' has no resolved type"
            raise ConfigurationError(msg)
        return MetricSpec(
            name=self.name, type=self.type, unit=self.unit, description=self.description
        )


class DatabaseConfig(BaseModel):
    """Location of the metrics database."""

    path: str = DEFAULT_DATABASE_PATH


class ReportConfig(BaseModel):
    """Report settings."""

    repository: str | None = None
    metric_names: list[str] | None = None


class FileConfig(BaseModel):
    """Schema for buildtrend.yaml configuration file."""

    metrics: list[MetricConfig] = Field(default_factory=list)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    quality_gate: QualityGateConfig = Field(default_factory=QualityGateConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)

    @field_validator("metrics")
    @classmethod
    def _unique_names(cls, metrics: list[MetricConfig]) -> list[MetricConfig]:
        seen: set[str] = set()
        for metric in metrics:
            if metric.name in seen:
                msg = f"Duplicate metric name '{metric.name}'"
                raise ValueError(msg)
            seen.add(metric.name)
        return metrics


class ConfigLoader:
    """Load configuration files and resolve effective settings."""

    @staticmethod
    def discover_config_file(explicit_path: Path | None = None) -> Path | None:
        """Find configuration file in priority order.

        Args:
            explicit_path: Explicitly provided config file path.

        Returns:
            Path to config file, or None if not found.

        Raises:
            ConfigurationError: If explicit path doesn't exist.
        """
        if explicit_path is not None:
            if not explicit_path.exists():
                msg = f"Configuration file not found: {explicit_path}"
                raise ConfigurationError(msg)
            return explicit_path

        cwd = Path.cwd()
        for filename in CONFIG_FILE_NAMES:
            config_path = cwd / filename
            if config_path.exists():
                return config_path

        # No config file found (silent, no warning)
        return None

    @staticmethod
    def load_yaml(path: Path) -> dict[str, Any]:
        """Load and parse YAML configuration file.

        Raises:
            ConfigurationError: If file cannot be read or parsed.
        """
        try:
            with path.open() as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            msg = f"Failed to parse configuration file {path}: {e}"
            raise ConfigurationError(msg) from e
        except OSError as e:
            msg = f"Failed to read configuration file {path}: {e}"
            raise ConfigurationError(msg) from e

        if content is None:
            return {}
        if not isinstance(content, dict):
            msg = f"Configuration file {path} must contain a mapping at the top level"
            raise ConfigurationError(msg)
        return content

    @staticmethod
    def interpolate_env_vars(value: Any) -> Any:
        """Recursively interpolate environment variables in configuration.

        Supports two syntaxes:
        - ${VAR} - Required variable, raises error if not set
        - ${VAR:-default} - Optional variable with default value

        Raises:
            ConfigurationError: If required environment variable is not set.
        """
        if isinstance(value, str):

            def replace(match: re.Match[str]) -> str:
                var_name = match.group(1)
                default_value = match.group(2)  # None if no default specified
                env_value = os.environ.get(var_name)
                if env_value is not None:
                    return env_value
                if default_value is not None:
                    return default_value
                msg = f"Environment variable {var_name} is not set"
                raise ConfigurationError(msg)

            return ENV_VAR_PATTERN.sub(replace, value)
        if isinstance(value, dict):
            return {k: ConfigLoader.interpolate_env_vars(v) for k, v in value.items()}
        if isinstance(value, list):
            return [ConfigLoader.interpolate_env_vars(item) for item in value]
        return value

    @staticmethod
    def load_config(explicit_path: Path | None = None) -> FileConfig | None:
        """Discover, load, and parse configuration file.

        Args:
            explicit_path: Explicitly provided config file path.

        Returns:
            Parsed FileConfig, or None if no config file found.

        Raises:
            ConfigurationError: If config file exists but is invalid.
        """
        config_path = ConfigLoader.discover_config_file(explicit_path)
        if config_path is None:
            return None

        raw_config = ConfigLoader.load_yaml(config_path)
        interpolated = ConfigLoader.interpolate_env_vars(raw_config)

        try:
            return FileConfig.model_validate(interpolated)
        except PydanticValidationError as e:
            msg = f"Invalid configuration in {config_path}: {e}"
            raise ConfigurationError(
                msg, details={"fields": [".".join(map(str, err["loc"])) for err in e.errors()]}
            ) from e

    @staticmethod
    def resolve_metrics(
        file_config: FileConfig | None,
        registry: Mapping[str, MetricTemplate] = BUILT_IN_METRICS,
    ) -> list[MetricConfig]:
        """Resolve built-in references into complete metric configurations.

        Args:
            file_config: Parsed configuration file, or None.
            registry: Templates that ``builtin`` references are looked up in.

        Returns:
            Metrics with type, unit, description and command filled in.

        Raises:
            ConfigurationError: If a metric references an unknown template.
        """
        if file_config is None:
            return []

        resolved: list[MetricConfig] = []
        for metric in file_config.metrics:
            if metric.builtin is None:
                resolved.append(metric)
                continue

            template = registry.get(metric.builtin)
            if template is None:
                msg = f"Metric '{metric.name}' references unknown built-in '{metric.builtin}'"
                raise ConfigurationError(msg, details={"available": sorted(registry)})

            resolved.append(
                metric.model_copy(
                    update={
                        "type": metric.type or template.type,
                        "unit": metric.unit or template.unit,
                        "description": metric.description or template.description,
                        "command": metric.command or template.command,
                    }
                )
            )
        return resolved

    @staticmethod
    def resolve_quality_gate_config(
        file_config: FileConfig | None,
        *,
        cli_mode: GateMode | None = None,
        cli_reference_branch: str | None = None,
    ) -> QualityGateConfig:
        """Resolve quality gate configuration.

        Args:
            file_config: Parsed configuration file, or None.
            cli_mode: CLI gate mode override.
            cli_reference_branch: CLI reference branch override.

        Returns:
            Resolved QualityGateConfig.
        """
        config = file_config.quality_gate if file_config else QualityGateConfig()

        if cli_mode is not None:
            config = config.model_copy(update={"mode": cli_mode})
        if cli_reference_branch is not None:
            baseline = BaselineConfig(
                reference_branch=cli_reference_branch,
                max_builds=config.baseline.max_builds,
                max_age_days=config.baseline.max_age_days,
            )
            config = config.model_copy(update={"baseline": baseline})

        return config

    @staticmethod
    def resolve_reference_branch(
        file_config: FileConfig | None,
        *,
        cli_branch: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> str:
        """Resolve the branch baselines are drawn from.

        Priority: CLI, config file, ``GITHUB_BASE_REF``, then ``main``.
        """
        if cli_branch:
            return cli_branch
        if file_config and file_config.quality_gate.baseline.reference_branch:
            return file_config.quality_gate.baseline.reference_branch

        env = os.environ if env is None else env
        return env.get("GITHUB_BASE_REF") or DEFAULT_REFERENCE_BRANCH

    @staticmethod
    def resolve_database_path(
        file_config: FileConfig | None,
        *,
        cli_path: Path | None = None,
    ) -> Path:
        """Resolve the metrics database path (CLI, then file, then default)."""
        if cli_path is not None:
            return cli_path
        if file_config:
            return Path(file_config.database.path)
        return Path(DEFAULT_DATABASE_PATH)

    @staticmethod
    def resolve_report_options(
        file_config: FileConfig | None,
        *,
        cli_repository: str | None = None,
        cli_metric_names: list[str] | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ReportOptions:
        """Resolve report options.

        The repository falls back to ``GITHUB_REPOSITORY`` when neither the
        CLI nor the config file names one.
        """
        repository = cli_repository
        metric_names = cli_metric_names or None

        if file_config:
            repository = repository or file_config.report.repository
            metric_names = metric_names or file_config.report.metric_names

        env = os.environ if env is None else env
        repository = repository or env.get("GITHUB_REPOSITORY")

        return ReportOptions(repository=repository, metric_names=metric_names)


def load_config(explicit_path: Path | None = None) -> FileConfig | None:
    """Convenience function to load configuration.

    Args:
        explicit_path: Explicitly provided config file path.

    Returns:
        Parsed FileConfig, or None if no config file found.
    """
    return ConfigLoader.load_config(explicit_path)
