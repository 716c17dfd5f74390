"""Tests for the command-line interface."""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from typer.testing import CliRunner

from buildtrend.cli.main import app, load_collected_metrics
from buildtrend.exceptions import ValidationError
from buildtrend.models import BuildContext, CollectedMetric
from buildtrend.persistence import MetricsStore
from buildtrend.quality_gate.comment import DEFAULT_MARKER

runner = CliRunner()

GITHUB_ENV = {
    "GITHUB_SHA": "0123456789abcdef",
    "GITHUB_REF": "refs/heads/feature/login",
    "GITHUB_RUN_ID": "555",
    "GITHUB_RUN_NUMBER": "12",
    "GITHUB_ACTOR": "octocat",
    "GITHUB_EVENT_NAME": "pull_request",
}

GATE_CONFIG = """\
quality_gate:
  thresholds:
    - metric: coverage
      mode: min
      target: 75
"""


def write_collected(path: Path, coverage: float, status: str = "ok") -> Path:
    """Write a collected metrics file in the collector wire format."""
    path.write_text(
        json.dumps(
            [
                {
                    "definition": {"name": "coverage", "type": "numeric", "unit": "percent"},
                    "value_numeric": coverage,
                },
                {"definition": {"name": "status", "type": "label"}, "value_label": status},
            ]
        )
    )
    return path


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory without GitHub Actions variables."""
    monkeypatch.chdir(tmp_path)
    for name in (*GITHUB_ENV, "GITHUB_BASE_REF", "GITHUB_REPOSITORY"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def seeded_db(workdir: Path) -> Path:
    """A database with three recent main-branch builds at 80% coverage."""
    db_path = workdir / "metrics.db"
    now = datetime.now(UTC)
    with MetricsStore(db_path) as store:
        for i in range(3):
            context = BuildContext(
                commit_sha=f"main{i}",
                branch="main",
                run_id=f"run-{i}",
                run_number=i + 1,
                timestamp=now - timedelta(days=3 - i),
            )
            store.record_run(
                context,
                [
                    CollectedMetric.model_validate(
                        {
                            "definition": {
                                "name": "coverage",
                                "type": "numeric",
                                "unit": "percent",
                            },
                            "value_numeric": 80.0,
                        }
                    )
                ],
            )
    return db_path


class TestLoadCollectedMetrics:
    """Tests for reading collector output."""

    def test_valid_file(self, tmp_path: Path) -> None:
        """Wire-format entries are parsed into collected metrics."""
        metrics = load_collected_metrics(write_collected(tmp_path / "c.json", 85.0))

        assert [m.definition.name for m in metrics] == ["coverage", "status"]
        assert metrics[0].value_numeric == 85.0
        assert metrics[1].value_label == "ok"

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Malformed JSON is an input error."""
        path = tmp_path / "c.json"
        path.write_text("{not json")

        with pytest.raises(ValidationError) as exc_info:
            load_collected_metrics(path)
        assert exc_info.value.code == "INVALID_INPUT"

    def test_invalid_entries(self, tmp_path: Path) -> None:
        """Entries that do not match the format report their fields."""
        path = tmp_path / "c.json"
        path.write_text(json.dumps([{"definition": {"name": "x", "type": "bogus"}}]))

        with pytest.raises(ValidationError) as exc_info:
            load_collected_metrics(path)
        assert exc_info.value.code == "INVALID_INPUT"
        assert exc_info.value.details["fields"]

    def test_missing_file(self, tmp_path: Path) -> None:
        """An unreadable file is an input error."""
        with pytest.raises(ValidationError):
            load_collected_metrics(tmp_path / "missing.json")


class TestRecordCommand:
    """Tests for `buildtrend record`."""

    def test_records_run(self, workdir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """The run is stored with the context from the environment."""
        for name, value in GITHUB_ENV.items():
            monkeypatch.setenv(name, value)
        collected = write_collected(workdir / "collected.json", 85.0)
        db_path = workdir / "data" / "metrics.db"

        result = runner.invoke(app, ["record", str(collected), "--database", str(db_path)])

        assert result.exit_code == 0, result.output
        assert "Recorded build 1" in result.output
        with MetricsStore(db_path) as store:
            (build,) = store.list_builds()
            assert build.branch == "feature/login"
            assert build.run_number == 12
            assert build.actor == "octocat"
            assert [d.name for d in store.list_definitions()] == ["coverage", "status"]

    def test_missing_ci_context(self, workdir: Path) -> None:
        """Recording outside CI fails with a clear error."""
        collected = write_collected(workdir / "collected.json", 85.0)

        result = runner.invoke(
            app, ["record", str(collected), "--database", str(workdir / "m.db")]
        )

        assert result.exit_code == 1
        assert "GITHUB_SHA" in result.output

    def test_invalid_ci_context(self, workdir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """An out-of-range run number is reported as an error, not a traceback."""
        for name, value in {**GITHUB_ENV, "GITHUB_RUN_NUMBER": "-3"}.items():
            monkeypatch.setenv(name, value)
        collected = write_collected(workdir / "collected.json", 85.0)

        result = runner.invoke(
            app, ["record", str(collected), "--database", str(workdir / "m.db")]
        )

        assert result.exit_code == 1
        assert "run_number" in result.output

    def test_invalid_input(self, workdir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A malformed collected metrics file fails the command."""
        for name, value in GITHUB_ENV.items():
            monkeypatch.setenv(name, value)
        collected = workdir / "collected.json"
        collected.write_text("[")

        result = runner.invoke(
            app, ["record", str(collected), "--database", str(workdir / "m.db")]
        )

        assert result.exit_code == 1
        assert "Error" in result.output


class TestGateCommand:
    """Tests for `buildtrend gate`."""

    def gate_args(self, workdir: Path, db_path: Path, *extra: str) -> list[str]:
        config = workdir / "buildtrend.yaml"
        config.write_text(GATE_CONFIG)
        collected = write_collected(workdir / "collected.json", 70.0)
        return [
            "gate",
            str(collected),
            "--database",
            str(db_path),
            "--config",
            str(config),
            "--reference-branch",
            "main",
            *extra,
        ]

    def test_hard_mode_failure_exits_nonzero(self, workdir: Path, seeded_db: Path) -> None:
        """A failing gate in hard mode exits with status 1."""
        result = runner.invoke(app, self.gate_args(workdir, seeded_db, "--mode", "hard"))

        assert result.exit_code == 1
        assert "Overall: FAIL" in result.output

    def test_soft_mode_failure_exits_zero(self, workdir: Path, seeded_db: Path) -> None:
        """Soft mode reports the failure without blocking."""
        result = runner.invoke(app, self.gate_args(workdir, seeded_db))

        assert result.exit_code == 0, result.output
        assert "Overall: FAIL" in result.output

    def test_writes_outputs(self, workdir: Path, seeded_db: Path) -> None:
        """JSON and Markdown outputs are written on request."""
        json_path = workdir / "gate.json"
        markdown_path = workdir / "comment.md"

        result = runner.invoke(
            app,
            self.gate_args(
                workdir,
                seeded_db,
                "--json-output",
                str(json_path),
                "--markdown-output",
                str(markdown_path),
            ),
        )

        assert result.exit_code == 0, result.output
        payload = json.loads(json_path.read_text())
        assert payload["status"] == "fail"
        assert payload["mode"] == "soft"
        assert payload["baseline_info"]["builds_considered"] == 3
        assert payload["metrics"][0]["baseline_median"] == 80.0
        comment = markdown_path.read_text()
        assert comment.startswith(DEFAULT_MARKER)
        assert "Quality Gate: **FAIL**" in comment

    def test_empty_database_never_blocks(self, workdir: Path) -> None:
        """Without a baseline the metric is unknown and the gate does not fail."""
        markdown_path = workdir / "comment.md"

        result = runner.invoke(
            app,
            self.gate_args(
                workdir,
                workdir / "empty.db",
                "--mode",
                "hard",
                "--markdown-output",
                str(markdown_path),
            ),
        )

        assert result.exit_code == 0, result.output
        assert "Overall: FAIL" not in result.output
        assert "No Baseline Data Available" in markdown_path.read_text()

    def test_off_mode(self, workdir: Path, seeded_db: Path) -> None:
        """Off mode never fails."""
        result = runner.invoke(app, self.gate_args(workdir, seeded_db, "--mode", "off"))

        assert result.exit_code == 0
        assert "Overall: UNKNOWN" in result.output


class TestReportCommand:
    """Tests for `buildtrend report`."""

    def test_generates_report(self, workdir: Path, seeded_db: Path) -> None:
        """The report is written to the requested path."""
        output = workdir / "out" / "report.html"

        result = runner.invoke(
            app,
            [
                "report",
                "--database",
                str(seeded_db),
                "--output",
                str(output),
                "--repository",
                "acme/widgets",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Report generated" in result.output
        html = output.read_text(encoding="utf-8")
        assert "acme/widgets" in html
        assert "<h2>coverage</h2>" in html

    def test_empty_database(self, workdir: Path) -> None:
        """An empty database still produces a report."""
        output = workdir / "report.html"

        result = runner.invoke(
            app, ["report", "--database", str(workdir / "empty.db"), "--output", str(output)]
        )

        assert result.exit_code == 0, result.output
        assert "No metrics data found" in result.output
        assert "No metrics data" in output.read_text(encoding="utf-8")


class TestMetricsCommand:
    """Tests for `buildtrend metrics`."""

    def test_lists_built_ins(self, workdir: Path) -> None:
        """Built-in templates are listed without a config file."""
        result = runner.invoke(app, ["metrics"])

        assert result.exit_code == 0, result.output
        assert "Built-in Metrics" in result.output
        assert "bundle-size" in result.output
        assert "Configured Metrics" not in result.output

    def test_lists_configured_metrics(self, workdir: Path) -> None:
        """Metrics from the discovered config file are listed."""
        (workdir / "buildtrend.yaml").write_text(
            "metrics:\n  - name: web-bundle\n    builtin: bundle-size\n"
        )

        result = runner.invoke(app, ["metrics"])

        assert result.exit_code == 0, result.output
        assert "Configured Metrics" in result.output
        assert "web-bundle" in result.output

    def test_invalid_config(self, workdir: Path) -> None:
        """An invalid config file fails the command."""
        (workdir / "buildtrend.yaml").write_text("metrics:\n  - name: x\n    builtin: nope\n")

        result = runner.invoke(app, ["metrics"])

        assert result.exit_code == 1
        assert "Error" in result.output
