"""Summary statistics and trend detection for stored metric series."""

from __future__ import annotations

import statistics
from typing import TYPE_CHECKING

from buildtrend.analysis.models import SummaryStats, TrendDirection
from buildtrend.models import MetricType

MIN_DATA_POINTS_FOR_TREND = 2

if TYPE_CHECKING:
    from buildtrend.models import TimeSeriesData
    from buildtrend.persistence import MetricsStore


def _trend(first: float, last: float) -> tuple[TrendDirection | None, float | None]:
    if first == 0:
        return None, None

    percent = (last - first) / first * 100
    if percent > 0:
        return TrendDirection.UP, percent
    if percent < 0:
        return TrendDirection.DOWN, percent
    return TrendDirection.STABLE, percent


def calculate_summary_stats(series: TimeSeriesData) -> SummaryStats:
    """Calculate summary statistics for a time series.

    Only non-null numeric values count. The trend compares the first and
    last of those values.

    Args:
        series: Time-ascending series for one metric.

    Returns:
        SummaryStats; all fields are None for label series or series
        without numeric values.
    """
    if series.metric_type != MetricType.NUMERIC:
        return SummaryStats()

    values = [p.value_numeric for p in series.data_points if p.value_numeric is not None]
    if not values:
        return SummaryStats()

    direction: TrendDirection | None = None
    percent: float | None = None
    if len(values) >= MIN_DATA_POINTS_FOR_TREND:
        direction, percent = _trend(values[0], values[-1])

    return SummaryStats(
        latest=values[-1],
        min=min(values),
        max=max(values),
        average=statistics.fmean(values),
        trend_direction=direction,
        trend_percent=percent,
    )


class TrendAnalyzer:
    """Computes summary statistics for metrics held in a store."""

    def __init__(self, store: MetricsStore) -> None:
        """Initialize the trend analyzer.

        Args:
            store: Metrics store to read time series from.
        """
        self._store = store

    def summarize(self, metric_name: str) -> SummaryStats:
        """Summarize one metric.

        Raises:
            NotFoundError: If the metric is unknown.
        """
        return calculate_summary_stats(self._store.query_time_series(metric_name))

    def summarize_all(self) -> dict[str, SummaryStats]:
        """Summarize every defined metric, keyed by name."""
        return {
            definition.name: self.summarize(definition.name)
            for definition in self._store.list_definitions()
        }
