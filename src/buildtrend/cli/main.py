"""buildtrend CLI implementation.

Provides the command-line interface for recording build metrics, running the
quality gate and generating trend reports.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.table import Table

from buildtrend.config import ConfigLoader, FileConfig
from buildtrend.exceptions import BuildTrendError, ValidationError
from buildtrend.metrics import BUILT_IN_METRICS, format_delta, format_value
from buildtrend.models import CollectedMetric
from buildtrend.persistence import MetricsStore, detect_build_context
from buildtrend.quality_gate import (
    BaselineInfo,
    GateMode,
    GateStatus,
    QualityGateResult,
    build_samples,
    builds_considered,
    evaluate_quality_gate,
    render_gate_comment,
)
from buildtrend.reporting import HtmlReportGenerator, build_report_data

logger = logging.getLogger(__name__)

_COLLECTED_ADAPTER = TypeAdapter(list[CollectedMetric])

_STATUS_STYLES = {
    GateStatus.PASS: "green",
    GateStatus.FAIL: "red",
    GateStatus.UNKNOWN: "yellow",
}

app = typer.Typer(
    name="buildtrend",
    help="Track build metrics across CI runs, gate pull requests and report trends.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to buildtrend.yaml (auto-discovered if not set).",
    ),
]
DatabaseOption = Annotated[
    Path | None,
    typer.Option(
        "--database",
        "-d",
        help="Path to the metrics database (overrides config).",
    ),
]


@app.callback()
def _configure(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_collected_metrics(path: Path) -> list[CollectedMetric]:
    """Load collected metrics from a JSON file.

    The file holds a list of ``{"definition": {...}, "value_numeric"?: n,
    "value_label"?: s}`` objects.

    Raises:
        ValidationError: If the file cannot be read or does not match the format.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        msg = f"Failed to read collected metrics from {path}: {e}"
        raise ValidationError(msg, code="INVALID_INPUT") from e
    except json.JSONDecodeError as e:
        msg = f"Collected metrics file {path} is not valid JSON: {e}"
        raise ValidationError(msg, code="INVALID_INPUT") from e

    try:
        return _COLLECTED_ADAPTER.validate_python(raw)
    except PydanticValidationError as e:
        msg = f"Invalid collected metrics in {path}: {e}"
        raise ValidationError(
            msg,
            code="INVALID_INPUT",
            details={"fields": [".".join(map(str, err["loc"])) for err in e.errors()]},
        ) from e


def _load_file_config(config_path: Path | None) -> FileConfig | None:
    file_config = ConfigLoader.load_config(config_path)
    if file_config is not None:
        logger.debug("Loaded configuration with %d metric(s)", len(file_config.metrics))
    return file_config


@app.command()
def record(
    collected_path: Annotated[
        Path,
        typer.Argument(help="JSON file with the metrics collected for this run."),
    ],
    database: DatabaseOption = None,
    config: ConfigOption = None,
) -> None:
    """Record this CI run's metrics in the database.

    The build context (commit, branch, run) is read from the GitHub Actions
    environment.

    Example:
        buildtrend record collected.json --database .buildtrend/metrics.db
    """
    try:
        file_config = _load_file_config(config)
        db_path = ConfigLoader.resolve_database_path(file_config, cli_path=database)
        collected = load_collected_metrics(collected_path)
        context = detect_build_context()

        with MetricsStore(db_path) as store:
            build_id = store.record_run(context, collected)
    except BuildTrendError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    stored = sum(1 for m in collected if m.reading is not None)
    console.print(
        f"[green]Recorded build {build_id} ({context.branch} @ {context.commit_sha[:7]}) "
        f"with {stored} metric value(s).[/green]"
    )


def _display_gate_result(result: QualityGateResult) -> None:
    """Print the gate result as a table."""
    info = result.baseline_info
    table = Table(
        title=(
            f"Quality Gate ({result.mode.value}) - baseline {info.reference_branch}, "
            f"{info.builds_considered}/{info.max_builds} builds"
        )
    )
    table.add_column("Metric", style="cyan")
    table.add_column("Baseline", justify="right")
    table.add_column("PR Value", justify="right")
    table.add_column("Δ", justify="right")
    table.add_column("Status")
    table.add_column("Message")

    for metric in result.metrics:
        delta = (
            format_delta(metric.absolute_delta, metric.unit)
            if metric.absolute_delta is not None
            else "N/A"
        )
        style = _STATUS_STYLES[metric.status]
        table.add_row(
            metric.metric,
            format_value(metric.baseline_median, metric.unit),
            format_value(metric.pull_request_value, metric.unit),
            delta,
            f"[{style}]{metric.status.value.upper()}[/{style}]",
            metric.message or "",
        )

    console.print(table)
    style = _STATUS_STYLES[result.status]
    console.print(f"Overall: [{style}]{result.status.value.upper()}[/{style}]")


@app.command()
def gate(  # noqa: PLR0913 - Typer requires CLI args as function parameters
    collected_path: Annotated[
        Path,
        typer.Argument(help="JSON file with the metrics collected for this run."),
    ],
    database: DatabaseOption = None,
    config: ConfigOption = None,
    mode: Annotated[
        GateMode | None,
        typer.Option("--mode", "-m", help="Gate mode: off, soft or hard (overrides config)."),
    ] = None,
    reference_branch: Annotated[
        str | None,
        typer.Option(
            "--reference-branch",
            "-b",
            help="Branch to take the baseline from (default: GITHUB_BASE_REF or main).",
        ),
    ] = None,
    exclude_build_id: Annotated[
        int | None,
        typer.Option(
            "--exclude-build-id",
            help="Build ID of this run if it was already recorded.",
        ),
    ] = None,
    json_output: Annotated[
        Path | None,
        typer.Option("--json-output", help="Write the gate result as JSON."),
    ] = None,
    markdown_output: Annotated[
        Path | None,
        typer.Option("--markdown-output", help="Write a pull request comment body."),
    ] = None,
) -> None:
    """Evaluate this run's metrics against the reference branch baseline.

    Exits with status 1 only when the gate is in hard mode and fails.

    Example:
        buildtrend gate collected.json --mode hard --markdown-output comment.md
    """
    try:
        file_config = _load_file_config(config)
        gate_config = ConfigLoader.resolve_quality_gate_config(file_config, cli_mode=mode)
        branch = ConfigLoader.resolve_reference_branch(file_config, cli_branch=reference_branch)
        db_path = ConfigLoader.resolve_database_path(file_config, cli_path=database)
        collected = load_collected_metrics(collected_path)

        baseline = gate_config.baseline
        with MetricsStore(db_path) as store:
            samples = build_samples(
                collected,
                store,
                branch,
                baseline.max_builds,
                baseline.max_age_days,
                exclude_build_id=exclude_build_id,
            )
    except BuildTrendError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    baseline_info = BaselineInfo(
        reference_branch=branch,
        builds_considered=builds_considered(samples),
        max_builds=baseline.max_builds,
        max_age_days=baseline.max_age_days,
    )
    result = evaluate_quality_gate(samples, gate_config, baseline_info)
    _display_gate_result(result)

    try:
        if json_output is not None:
            json_output.write_text(result.model_dump_json(indent=2), encoding="utf-8")
            console.print(f"[green]Gate result written: {json_output}[/green]")
        if markdown_output is not None:
            markdown_output.write_text(render_gate_comment(result), encoding="utf-8")
            console.print(f"[green]Comment body written: {markdown_output}[/green]")
    except OSError as e:
        console.print(f"[red]Error:[/red] Failed to write gate output: {e}")
        raise typer.Exit(code=1) from e

    if result.mode == GateMode.HARD and result.status == GateStatus.FAIL:
        raise typer.Exit(code=1)


@app.command()
def report(
    database: DatabaseOption = None,
    config: ConfigOption = None,
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output file path for the report."),
    ] = Path("report.html"),
    repository: Annotated[
        str | None,
        typer.Option("--repository", "-r", help="Repository name shown in the report."),
    ] = None,
    metric_names: Annotated[
        list[str] | None,
        typer.Option("--metric", help="Metric to include (repeatable; default all)."),
    ] = None,
) -> None:
    """Generate an HTML trend report from the metrics database.

    Example:
        buildtrend report --output report.html --metric coverage --metric loc
    """
    try:
        file_config = _load_file_config(config)
        db_path = ConfigLoader.resolve_database_path(file_config, cli_path=database)
        options = ConfigLoader.resolve_report_options(
            file_config, cli_repository=repository, cli_metric_names=metric_names
        )

        with MetricsStore(db_path) as store:
            report_data = build_report_data(store, options)
        HtmlReportGenerator().generate(report_data, output)
    except BuildTrendError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    if not report_data.metrics:
        console.print("[yellow]No metrics data found; wrote an empty report.[/yellow]")
    console.print(f"[green]Report generated: {output}[/green]")


@app.command()
def metrics(
    config: ConfigOption = None,
) -> None:
    """List built-in metric templates and configured metrics."""
    table = Table(title="Built-in Metrics")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Unit")
    table.add_column("Description")

    for template in BUILT_IN_METRICS.values():
        table.add_row(template.id, template.type.value, template.unit or "", template.description)

    console.print(table)

    try:
        file_config = _load_file_config(config)
        configured = ConfigLoader.resolve_metrics(file_config)
    except BuildTrendError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    if not configured:
        return

    table = Table(title="Configured Metrics")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Unit")
    table.add_column("Command")
    for metric in configured:
        metric_type = metric.type.value if metric.type else ""
        table.add_row(metric.name, metric_type, metric.unit or "", metric.command or "")

    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
