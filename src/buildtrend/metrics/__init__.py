"""Metric templates and value formatting."""

from buildtrend.metrics.registry import (
    BUILT_IN_METRICS,
    MetricTemplate,
    get_built_in_metric,
    list_built_in_metric_ids,
)
from buildtrend.metrics.units import UnitType, format_delta, format_value

__all__ = [
    "BUILT_IN_METRICS",
    "MetricTemplate",
    "UnitType",
    "format_delta",
    "format_value",
    "get_built_in_metric",
    "list_built_in_metric_ids",
]
