"""Analysis data models."""

from enum import Enum

from pydantic import BaseModel


class TrendDirection(str, Enum):
    """Direction of a metric trend between its first and last values."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class SummaryStats(BaseModel):
    """Summary statistics for a numeric metric series.

    Every field is None for label metrics and for series without any
    numeric values.
    """

    latest: float | None = None
    min: float | None = None
    max: float | None = None
    average: float | None = None
    trend_direction: TrendDirection | None = None
    trend_percent: float | None = None
