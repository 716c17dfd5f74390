"""HTML report generator for build metrics.

Generates a self-contained HTML document with one card per metric and the
chart configurations embedded as JSON for Chart.js.
"""

from __future__ import annotations

import json
import logging
from importlib.resources import files
from typing import TYPE_CHECKING

from buildtrend.analysis import TrendDirection
from buildtrend.exceptions import ReportError
from buildtrend.metrics import format_value

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from buildtrend.analysis import SummaryStats
    from buildtrend.reporting.generator import MetricReportData, ReportData

logger = logging.getLogger(__name__)

CHART_JS_URL = "https://cdn.jsdelivr.net/npm/chart.js@4.4.0/dist/chart.umd.js"
DATE_ADAPTER_URL = (
    "https://cdn.jsdelivr.net/npm/chartjs-adapter-date-fns@3.0.0/"
    "dist/chartjs-adapter-date-fns.bundle.min.js"
)

_TREND_ARROWS = {
    TrendDirection.UP: "↑",
    TrendDirection.DOWN: "↓",
    TrendDirection.STABLE: "→",
}

# Characters that could close the script element or start markup inside it
_SCRIPT_ESCAPES = {
    ord("<"): "\\u003c",
    ord(">"): "\\u003e",
    ord("&"): "\\u0026",
}


def _get_styles() -> str:
    """Load the CSS styles."""
    styles_file = files("buildtrend.reporting.templates").joinpath("styles.css")
    return styles_file.read_text(encoding="utf-8")


def _format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


class HtmlReportGenerator:
    """Generates HTML reports from derived report data."""

    def __init__(self) -> None:
        """Initialize the generator."""
        self._styles: str | None = None

    def _load_styles(self) -> str:
        """Load the CSS styles lazily."""
        if self._styles is None:
            self._styles = _get_styles()
        return self._styles

    def generate(self, report_data: ReportData, output_path: Path) -> None:
        """Render a report and write it to disk.

        Args:
            report_data: Derived report data.
            output_path: Path to write the HTML report.

        Raises:
            ReportError: If the file cannot be written.
        """
        html = self.render(report_data)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(html, encoding="utf-8")
        except OSError as e:
            msg = f"Failed to write report to {output_path}: {e}"
            raise ReportError(
                msg, code="REPORT_WRITE_FAILED", details={"path": str(output_path)}
            ) from e

        logger.info("Wrote report with %d metric(s) to %s", len(report_data.metrics), output_path)

    def render(self, report_data: ReportData) -> str:
        """Render report data as an HTML document.

        Every user-influenced string is entity-escaped before it reaches the
        markup; chart data is embedded as JSON with markup characters escaped.
        """
        metadata = report_data.metadata
        repository = _escape_html(metadata.repository)

        if report_data.metrics:
            cards_html = "\n".join(self._build_metric_card(m) for m in report_data.metrics)
        else:
            cards_html = self._build_empty_state()

        charts_json = _script_json(
            [
                {"id": m.id, "config": m.chart_config.model_dump()}
                for m in report_data.metrics
            ]
        )

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Build Metrics Report - {repository}</title>
    <script src="{CHART_JS_URL}"></script>
    <script src="{DATE_ADAPTER_URL}"></script>
    <style>
{self._load_styles()}
    </style>
</head>
<body>
    <header>
        <div>
            <h1>Build Metrics Report</h1>
            <p class="repository">{repository}</p>
        </div>
        <div class="report-meta">
            <div>Generated: {_format_timestamp(metadata.generated_at)}</div>
            <div>Data Range: {_format_timestamp(metadata.date_range.start)} - {_format_timestamp(metadata.date_range.end)}</div>
            <div>Total Builds: {metadata.build_count}</div>
        </div>
    </header>

    <main>
        <div class="metrics-grid">
            {cards_html}
        </div>
    </main>

    <footer>
        <p>Generated by <strong>buildtrend</strong></p>
    </footer>

    <script>
        const chartsData = {charts_json};
        chartsData.forEach(chartData => {{
            const ctx = document.getElementById('chart-' + chartData.id);
            if (ctx) {{
                new Chart(ctx, chartData.config);
            }}
        }});
    </script>
</body>
</html>
"""  # noqa: E501

    def _build_metric_card(self, metric: MetricReportData) -> str:
        """Build HTML for one metric card."""
        name = _escape_html(metric.name)
        description_html = (
            f'<p class="metric-description">{_escape_html(metric.description)}</p>'
            if metric.description
            else ""
        )
        chart_kind = "Line" if metric.chart_config.type == "line" else "Bar"
        aria_label = _escape_html(f"{chart_kind} chart showing {metric.name} over time")

        sparse_html = ""
        if metric.sparse:
            sparse_html = (
                '<div class="sparse-warning">'
                f"Limited data available ({metric.data_point_count} builds). "
                "More data will improve trend accuracy."
                "</div>"
            )

        return f"""
            <div class="metric-card">
                <h2>{name}</h2>
                {description_html}
                {self._build_stats_html(metric.stats, metric.unit)}
                <div class="chart-container">
                    <canvas id="chart-{_escape_html(metric.id)}" aria-label="{aria_label}"></canvas>
                </div>
                {sparse_html}
            </div>
            """

    def _build_stats_html(self, stats: SummaryStats, unit: str | None) -> str:
        """Build HTML for the latest/min/max/trend stat cells."""
        cells = [
            (format_value(stats.latest, unit), "Latest", ""),
            (format_value(stats.min, unit), "Min", ""),
            (format_value(stats.max, unit), "Max", ""),
        ]

        direction = stats.trend_direction
        arrow = _TREND_ARROWS[direction] if direction is not None else "—"
        percent = abs(stats.trend_percent) if stats.trend_percent is not None else 0.0
        trend_class = f"trend-{direction.value}" if direction is not None else "trend-none"
        cells.append((f"{arrow} {percent:.1f}%", "Trend", trend_class))

        items = [
            f'<div><div class="stat-value {css}">{_escape_html(value)}</div>'
            f'<div class="stat-label">{label}</div></div>'
            for value, label, css in cells
        ]
        return '<div class="stats-grid">' + "".join(items) + "</div>"

    def _build_empty_state(self) -> str:
        """Build HTML shown when there are no metrics."""
        return """
            <div class="empty-state">
                <h3>No metrics data</h3>
                <p>No metrics have been collected yet. Run your CI pipeline to start collecting data.</p>
            </div>
            """  # noqa: E501


def _script_json(value: object) -> str:
    """Serialize a value as JSON that is safe to embed inside a script element."""
    return json.dumps(value).translate(_SCRIPT_ESCAPES)


def _escape_html(text: str) -> str:
    """Escape HTML special characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )
