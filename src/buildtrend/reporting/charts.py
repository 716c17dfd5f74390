"""Chart.js configuration derived from metric time series.

Numeric series become line charts with explicit gaps for missing values;
label series become bar charts of occurrence counts.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel

from buildtrend.models import MetricType

if TYPE_CHECKING:
    from buildtrend.models import TimeSeriesData

SHORT_SHA_LENGTH = 7

_LINE_COLOR = "rgb(59, 130, 246)"
_LINE_FILL = "rgba(59, 130, 246, 0.1)"
_BAR_FILL = "rgba(59, 130, 246, 0.8)"

_METRIC_ID_PATTERN = re.compile(r"[^a-zA-Z0-9-]")


class ChartConfig(BaseModel):
    """A Chart.js chart description, serialized as-is into the report."""

    type: Literal["line", "bar"]
    data: dict[str, Any]
    options: dict[str, Any]


def metric_id(name: str) -> str:
    """DOM-safe identifier for a metric: anything outside [a-zA-Z0-9-] becomes '-'."""
    return _METRIC_ID_PATTERN.sub("-", name)


def _base_options(y_title: str) -> dict[str, Any]:
    return {
        "responsive": True,
        "maintainAspectRatio": False,
        "interaction": {"mode": "index", "intersect": False},
        "plugins": {"legend": {"display": False}},
        "scales": {
            "y": {
                "beginAtZero": True,
                "title": {"display": True, "text": y_title},
            },
        },
    }


def build_line_chart(series: TimeSeriesData) -> ChartConfig:
    """Build a line chart for a numeric series.

    Missing values stay as explicit None gaps and are never spanned.
    """
    values: list[float | None] = []
    metadata: list[dict[str, Any] | None] = []
    for point in series.data_points:
        values.append(point.value_numeric)
        if point.value_numeric is None:
            metadata.append(None)
        else:
            metadata.append(
                {
                    "commitSha": point.commit_sha[:SHORT_SHA_LENGTH],
                    "runNumber": point.run_number,
                }
            )

    options = _base_options(series.metric_name)
    options["scales"]["x"] = {
        "type": "time",
        "time": {"unit": "day"},
        "title": {"display": True, "text": "Build Date"},
    }

    return ChartConfig(
        type="line",
        data={
            "labels": [point.timestamp.isoformat() for point in series.data_points],
            "datasets": [
                {
                    "label": series.metric_name,
                    "data": values,
                    "metadata": metadata,
                    "borderColor": _LINE_COLOR,
                    "backgroundColor": _LINE_FILL,
                    "tension": 0.4,
                    "fill": True,
                    "spanGaps": False,
                    "pointRadius": 4,
                    "pointHoverRadius": 6,
                }
            ],
        },
        options=options,
    )


def build_bar_chart(series: TimeSeriesData) -> ChartConfig:
    """Build a bar chart of occurrence counts per distinct label."""
    counts = Counter(
        point.value_label for point in series.data_points if point.value_label is not None
    )
    labels = sorted(counts)

    options = _base_options("Count")
    options["scales"]["y"]["ticks"] = {"stepSize": 1}

    return ChartConfig(
        type="bar",
        data={
            "labels": labels,
            "datasets": [
                {
                    "label": "Occurrences",
                    "data": [counts[label] for label in labels],
                    "backgroundColor": _BAR_FILL,
                    "borderColor": _LINE_COLOR,
                    "borderWidth": 1,
                }
            ],
        },
        options=options,
    )


def build_chart_config(series: TimeSeriesData) -> ChartConfig:
    """Pick the chart kind for a series from its metric type."""
    if series.metric_type == MetricType.NUMERIC:
        return build_line_chart(series)
    return build_bar_chart(series)
