"""Tests for configuration file loader."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from buildtrend.config import ConfigLoader, FileConfig, MetricConfig
from buildtrend.exceptions import ConfigurationError
from buildtrend.models import MetricType
from buildtrend.quality_gate import GateMode, ThresholdMode

FULL_CONFIG = """\
metrics:
  - name: coverage
    builtin: coverage
  - name: bundle
    builtin: bundle-size
    description: Size of the web bundle
  - name: deploy-target
    type: label
    command: echo staging
database:
  path: ${METRICS_DB:-.ci/metrics.db}
quality_gate:
  mode: hard
  baseline:
    reference_branch: develop
    max_builds: 10
  thresholds:
    - metric: coverage
      mode: no-regression
      tolerance: 1.0
    - metric: bundle
      mode: delta-max-drop
      max_drop_percent: 5
      severity: warning
report:
  repository: acme/widgets
"""


class TestConfigFileDiscovery:
    """Tests for config file discovery."""

    def test_discover_explicit_path(self, tmp_path: Path) -> None:
        """Uses provided explicit path."""
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("metrics: []\n")

        assert ConfigLoader.discover_config_file(config_file) == config_file

    def test_discover_explicit_path_not_found_raises(self, tmp_path: Path) -> None:
        """Raises ConfigurationError for missing explicit path."""
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader.discover_config_file(tmp_path / "missing.yaml")
        assert "not found" in str(exc_info.value)

    def test_discover_buildtrend_yaml(self, tmp_path: Path) -> None:
        """Finds buildtrend.yaml in current directory."""
        config_file = tmp_path / "buildtrend.yaml"
        config_file.write_text("metrics: []\n")

        with patch.object(Path, "cwd", return_value=tmp_path):
            assert ConfigLoader.discover_config_file() == config_file

    def test_discover_priority_plain_over_dot(self, tmp_path: Path) -> None:
        """buildtrend.yaml takes priority over .buildtrend.yml."""
        (tmp_path / ".buildtrend.yml").write_text("metrics: []\n")
        config_file = tmp_path / "buildtrend.yaml"
        config_file.write_text("metrics: []\n")

        with patch.object(Path, "cwd", return_value=tmp_path):
            assert ConfigLoader.discover_config_file() == config_file

    def test_discover_none_when_no_file(self, tmp_path: Path) -> None:
        """Returns None when no config file exists."""
        with patch.object(Path, "cwd", return_value=tmp_path):
            assert ConfigLoader.discover_config_file() is None


class TestLoadYaml:
    """Tests for YAML parsing."""

    def test_empty_yaml_returns_empty_dict(self, tmp_path: Path) -> None:
        """An empty file is an empty configuration."""
        config_file = tmp_path / "buildtrend.yaml"
        config_file.write_text("")

        assert ConfigLoader.load_yaml(config_file) == {}

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        """Malformed YAML raises ConfigurationError."""
        config_file = tmp_path / "buildtrend.yaml"
        config_file.write_text("metrics: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Failed to parse"):
            ConfigLoader.load_yaml(config_file)

    def test_non_mapping_raises(self, tmp_path: Path) -> None:
        """A top-level list is rejected."""
        config_file = tmp_path / "buildtrend.yaml"
        config_file.write_text("- one\n- two\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            ConfigLoader.load_yaml(config_file)


class TestEnvironmentInterpolation:
    """Tests for ${VAR} interpolation."""

    def test_simple_var(self) -> None:
        """Set variables are substituted."""
        with patch.dict(os.environ, {"REPO": "acme/widgets"}):
            assert ConfigLoader.interpolate_env_vars("${REPO}") == "acme/widgets"

    def test_default_used_when_unset(self) -> None:
        """The default applies when the variable is unset."""
        with patch.dict(os.environ, {}, clear=True):
            assert ConfigLoader.interpolate_env_vars("${DB:-metrics.db}") == "metrics.db"

    def test_nested_structures(self) -> None:
        """Dicts and lists are interpolated recursively."""
        with patch.dict(os.environ, {"A": "1", "B": "2"}):
            result = ConfigLoader.interpolate_env_vars({"x": ["${A}", {"y": "${B}"}], "z": 3})

        assert result == {"x": ["1", {"y": "2"}], "z": 3}

    def test_missing_var_raises(self) -> None:
        """Required variables must be set."""
        with patch.dict(os.environ, {}, clear=True), pytest.raises(ConfigurationError):
            ConfigLoader.interpolate_env_vars("${MISSING}")


class TestLoadConfig:
    """Tests for full configuration loading."""

    def test_load_full_config(self, tmp_path: Path) -> None:
        """A complete file parses into FileConfig."""
        config_file = tmp_path / "buildtrend.yaml"
        config_file.write_text(FULL_CONFIG)

        with patch.dict(os.environ, {}, clear=True):
            config = ConfigLoader.load_config(config_file)

        assert isinstance(config, FileConfig)
        assert [m.name for m in config.metrics] == ["coverage", "bundle", "deploy-target"]
        assert config.database.path == ".ci/metrics.db"
        assert config.quality_gate.mode == GateMode.HARD
        assert config.quality_gate.baseline.max_builds == 10
        assert config.quality_gate.baseline.max_age_days == 90
        assert config.quality_gate.thresholds[1].mode == ThresholdMode.DELTA_MAX_DROP
        assert config.report.repository == "acme/widgets"

    def test_returns_none_when_not_found(self, tmp_path: Path) -> None:
        """No config file means no configuration."""
        with patch.object(Path, "cwd", return_value=tmp_path):
            assert ConfigLoader.load_config() is None

    def test_invalid_schema_raises(self, tmp_path: Path) -> None:
        """Schema errors are reported with their field locations."""
        config_file = tmp_path / "buildtrend.yaml"
        config_file.write_text("quality_gate:\n  mode: strict\n")

        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader.load_config(config_file)

        assert "quality_gate.mode" in exc_info.value.details["fields"]

    def test_duplicate_metric_names(self, tmp_path: Path) -> None:
        """Metric names must be unique."""
        config_file = tmp_path / "buildtrend.yaml"
        config_file.write_text(
            "metrics:\n  - name: loc\n    type: numeric\n  - name: loc\n    type: numeric\n"
        )

        with pytest.raises(ConfigurationError, match="Duplicate metric name"):
            ConfigLoader.load_config(config_file)


class TestMetricConfig:
    """Tests for metric entries."""

    @pytest.mark.parametrize("name", ["Coverage", "bundle_size", "a b", "", "x" * 65])
    def test_invalid_names(self, name: str) -> None:
        """Names are lowercase letters, digits and hyphens, at most 64 characters."""
        with pytest.raises(ValueError):
            MetricConfig(name=name, type=MetricType.NUMERIC)

    def test_requires_type_or_builtin(self) -> None:
        """A metric needs a type or a built-in reference."""
        with pytest.raises(ValueError, match="needs a type or a builtin"):
            MetricConfig(name="loc")

    def test_to_spec(self) -> None:
        """Resolved metrics convert to collector definitions."""
        spec = MetricConfig(name="loc", type=MetricType.NUMERIC, unit="integer").to_spec()

        assert spec.name == "loc"
        assert spec.type == MetricType.NUMERIC
        assert spec.unit == "integer"

    def test_to_spec_unresolved(self) -> None:
        """Unresolved built-in references cannot become definitions."""
        with pytest.raises(ConfigurationError):
            MetricConfig(name="loc", builtin="loc").to_spec()


class TestResolveMetrics:
    """Tests for built-in template resolution."""

    def test_builtin_fields_are_merged(self) -> None:
        """Templates fill in missing fields and explicit ones win."""
        config = FileConfig.model_validate(
            {
                "metrics": [
                    {"name": "coverage", "builtin": "coverage"},
                    {"name": "bundle", "builtin": "bundle-size", "description": "Web bundle"},
                    {"name": "custom", "type": "label"},
                ]
            }
        )

        coverage, bundle, custom = ConfigLoader.resolve_metrics(config)

        assert coverage.type == MetricType.NUMERIC
        assert coverage.unit == "percent"
        assert coverage.command
        assert bundle.unit == "bytes"
        assert bundle.description == "Web bundle"
        assert custom.type == MetricType.LABEL
        assert custom.command is None

    def test_unknown_builtin(self) -> None:
        """Unknown templates list the available ones."""
        config = FileConfig.model_validate({"metrics": [{"name": "x", "builtin": "nope"}]})

        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader.resolve_metrics(config)

        assert "coverage" in exc_info.value.details["available"]

    def test_custom_registry(self) -> None:
        """Resolution only consults the registry it is given."""
        config = FileConfig.model_validate({"metrics": [{"name": "x", "builtin": "coverage"}]})

        with pytest.raises(ConfigurationError):
            ConfigLoader.resolve_metrics(config, registry={})

    def test_no_config(self) -> None:
        """Without a config file there are no metrics."""
        assert ConfigLoader.resolve_metrics(None) == []


class TestResolveSettings:
    """Tests for CLI/file/environment precedence."""

    @pytest.fixture
    def file_config(self) -> FileConfig:
        """A config with file-level settings."""
        return FileConfig.model_validate(
            {
                "database": {"path": "data/metrics.db"},
                "quality_gate": {"mode": "hard", "baseline": {"reference_branch": "develop"}},
                "report": {"repository": "acme/file", "metric_names": ["loc"]},
            }
        )

    def test_gate_config_defaults(self) -> None:
        """Defaults apply without a config file."""
        config = ConfigLoader.resolve_quality_gate_config(None)

        assert config.mode == GateMode.SOFT
        assert config.thresholds == []

    def test_gate_config_cli_overrides(self, file_config: FileConfig) -> None:
        """CLI mode and branch override the file."""
        config = ConfigLoader.resolve_quality_gate_config(
            file_config, cli_mode=GateMode.OFF, cli_reference_branch="release"
        )

        assert config.mode == GateMode.OFF
        assert config.baseline.reference_branch == "release"
        assert file_config.quality_gate.mode == GateMode.HARD

    def test_reference_branch_precedence(self, file_config: FileConfig) -> None:
        """CLI beats file, file beats GITHUB_BASE_REF, which beats main."""
        env = {"GITHUB_BASE_REF": "trunk"}

        assert ConfigLoader.resolve_reference_branch(file_config, cli_branch="x", env=env) == "x"
        assert ConfigLoader.resolve_reference_branch(file_config, env=env) == "develop"
        assert ConfigLoader.resolve_reference_branch(None, env=env) == "trunk"
        assert ConfigLoader.resolve_reference_branch(None, env={}) == "main"

    def test_database_path(self, file_config: FileConfig, tmp_path: Path) -> None:
        """CLI path, then file path, then the default."""
        cli_path = tmp_path / "cli.db"

        assert ConfigLoader.resolve_database_path(file_config, cli_path=cli_path) == cli_path
        assert ConfigLoader.resolve_database_path(file_config) == Path("data/metrics.db")
        assert ConfigLoader.resolve_database_path(None) == Path(".buildtrend/metrics.db")

    def test_report_options(self, file_config: FileConfig) -> None:
        """Report options fall back from CLI to file to environment."""
        env = {"GITHUB_REPOSITORY": "acme/env"}

        from_file = ConfigLoader.resolve_report_options(file_config, env=env)
        from_cli = ConfigLoader.resolve_report_options(
            file_config, cli_repository="acme/cli", cli_metric_names=["coverage"], env=env
        )
        from_env = ConfigLoader.resolve_report_options(None, env=env)

        assert from_file.repository == "acme/file"
        assert from_file.metric_names == ["loc"]
        assert from_cli.repository == "acme/cli"
        assert from_cli.metric_names == ["coverage"]
        assert from_env.repository == "acme/env"
        assert from_env.metric_names is None
