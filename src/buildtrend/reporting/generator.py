"""Report data derivation.

Turns stored time series into summary statistics and chart configurations,
then hands the result to the HTML generator.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from buildtrend.analysis import SummaryStats, calculate_summary_stats
from buildtrend.exceptions import NotFoundError
from buildtrend.reporting.charts import ChartConfig, build_chart_config, metric_id
from buildtrend.reporting.html_generator import HtmlReportGenerator

if TYPE_CHECKING:
    from buildtrend.persistence import MetricsStore

logger = logging.getLogger(__name__)

DEFAULT_REPOSITORY = "unknown/repository"
SPARSE_THRESHOLD = 10


class ReportOptions(BaseModel):
    """Options controlling which metrics a report covers."""

    repository: str | None = None
    metric_names: list[str] | None = None


class DateRange(BaseModel):
    """Earliest and latest build timestamps covered by a report."""

    start: datetime
    end: datetime


class ReportMetadata(BaseModel):
    """Document-level report metadata."""

    repository: str
    generated_at: datetime
    build_count: int = Field(ge=0)
    date_range: DateRange


class MetricReportData(BaseModel):
    """Everything needed to render one metric card."""

    id: str
    name: str
    description: str | None = None
    unit: str | None = None
    stats: SummaryStats
    chart_config: ChartConfig
    sparse: bool
    data_point_count: int = Field(ge=0)


class ReportData(BaseModel):
    """Complete input for rendering a report."""

    metadata: ReportMetadata
    metrics: list[MetricReportData] = Field(default_factory=list)


def _report_metadata(
    store: MetricsStore, repository: str, generated_at: datetime
) -> ReportMetadata:
    timestamps = sorted(build.timestamp for build in store.list_builds())
    if timestamps:
        date_range = DateRange(start=timestamps[0], end=timestamps[-1])
    else:
        date_range = DateRange(start=generated_at, end=generated_at)

    return ReportMetadata(
        repository=repository,
        generated_at=generated_at,
        build_count=len(timestamps),
        date_range=date_range,
    )


def _unique_id(base: str, used: set[str]) -> str:
    """Suffix base with -2, -3, ... until it is not already used."""
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}-{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate


def build_report_data(
    store: MetricsStore,
    options: ReportOptions | None = None,
    now: datetime | None = None,
) -> ReportData:
    """Derive report data from the store.

    Requested metrics that do not exist are logged and skipped.

    Args:
        store: Metrics store to read from.
        options: Repository name and optional metric selection; all defined
            metrics are included when no selection is given.
        now: Generation timestamp (defaults to the current UTC time).

    Returns:
        ReportData ready for rendering.
    """
    options = options or ReportOptions()
    generated_at = now or datetime.now(UTC)
    repository = options.repository or DEFAULT_REPOSITORY

    names = options.metric_names
    if names is None:
        names = [definition.name for definition in store.list_definitions()]

    metrics: list[MetricReportData] = []
    used_ids: set[str] = set()
    for name in names:
        try:
            series = store.query_time_series(name)
        except NotFoundError as e:
            logger.warning("Skipping metric '%s' in report: %s", name, e)
            continue

        point_count = len(series.data_points)
        metrics.append(
            MetricReportData(
                id=_unique_id(metric_id(series.metric_name), used_ids),
                name=series.metric_name,
                description=series.description,
                unit=series.unit,
                stats=calculate_summary_stats(series),
                chart_config=build_chart_config(series),
                sparse=point_count < SPARSE_THRESHOLD,
                data_point_count=point_count,
            )
        )

    logger.debug("Derived report data for %d metric(s)", len(metrics))
    return ReportData(
        metadata=_report_metadata(store, repository, generated_at),
        metrics=metrics,
    )


def build_report(store: MetricsStore, options: ReportOptions | None = None) -> str:
    """Render the complete HTML report for a store."""
    return HtmlReportGenerator().render(build_report_data(store, options))
