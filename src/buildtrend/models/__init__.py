"""Data models for buildtrend."""

from buildtrend.models.metrics import (
    BuildContext,
    CollectedMetric,
    LabelReading,
    MetricDefinition,
    MetricReading,
    MetricSpec,
    MetricType,
    MetricValue,
    NumericReading,
    TimeSeriesData,
    TimeSeriesPoint,
    reading_type,
)

__all__ = [
    "BuildContext",
    "CollectedMetric",
    "LabelReading",
    "MetricDefinition",
    "MetricReading",
    "MetricSpec",
    "MetricType",
    "MetricValue",
    "NumericReading",
    "TimeSeriesData",
    "TimeSeriesPoint",
    "reading_type",
]
