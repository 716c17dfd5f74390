"""Metric data models.

Defines build contexts, metric definitions and values as stored in the
metrics database, plus the time-series view read back for reporting.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MetricType(str, Enum):
    """Kind of value a metric records."""

    NUMERIC = "numeric"
    LABEL = "label"


class NumericReading(BaseModel):
    """A numeric measurement."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["numeric"] = "numeric"
    value: float = Field(allow_inf_nan=False)


class LabelReading(BaseModel):
    """A categorical measurement."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["label"] = "label"
    value: str


# Exactly one of numeric/label is ever stored for a value
MetricReading = Annotated[NumericReading | LabelReading, Field(discriminator="kind")]


def reading_type(reading: NumericReading | LabelReading) -> MetricType:
    """Return the metric type a reading belongs to."""
    if isinstance(reading, NumericReading):
        return MetricType.NUMERIC
    return MetricType.LABEL


class MetricSpec(BaseModel):
    """Definition of a metric as reported by a collector."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    type: MetricType
    unit: str | None = None
    description: str | None = None


class MetricDefinition(BaseModel):
    """A stored metric definition. Names are unique across the store."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    type: MetricType
    unit: str | None = None
    description: str | None = None
    created_at: datetime


class BuildContext(BaseModel):
    """Identifying metadata for one CI run."""

    model_config = ConfigDict(frozen=True)

    commit_sha: str = Field(..., min_length=1)
    branch: str = Field(..., min_length=1)
    run_id: str = Field(..., min_length=1)
    run_number: int = Field(..., ge=0)
    timestamp: datetime
    actor: str | None = None
    event_name: str | None = None
    id: int | None = None  # Assigned by the store


class MetricValue(BaseModel):
    """One measurement of a metric for a build."""

    model_config = ConfigDict(frozen=True)

    id: int
    metric_id: int
    build_id: int
    reading: MetricReading
    collected_at: datetime
    collection_duration_ms: int | None = None

    @property
    def value_numeric(self) -> float | None:
        return self.reading.value if isinstance(self.reading, NumericReading) else None

    @property
    def value_label(self) -> str | None:
        return self.reading.value if isinstance(self.reading, LabelReading) else None


class CollectedMetric(BaseModel):
    """A metric value produced by a collector for the current run.

    Accepts the collector wire format (``value_numeric`` / ``value_label``)
    and normalizes it to a single reading. A missing reading means the
    collector could not produce a value.
    """

    definition: MetricSpec
    reading: MetricReading | None = None
    collected_at: datetime | None = None
    collection_duration_ms: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_wire_format(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "reading" in data:
            return data
        data = dict(data)
        numeric = data.pop("value_numeric", None)
        label = data.pop("value_label", None)
        if numeric is not None and label is not None:
            msg = "value_numeric and value_label are mutually exclusive"
            raise ValueError(msg)
        if numeric is not None:
            data["reading"] = {"kind": "numeric", "value": numeric}
        elif label is not None:
            data["reading"] = {"kind": "label", "value": label}
        return data

    @model_validator(mode="after")
    def _check_reading_type(self) -> "CollectedMetric":
        if self.reading is not None and reading_type(self.reading) != self.definition.type:
            msg = (
                f"Metric '{self.definition.name}' is declared {self.definition.type.value} "
                f"but received a {self.reading.kind} value"
            )
            raise ValueError(msg)
        return self

    @property
    def value_numeric(self) -> float | None:
        return self.reading.value if isinstance(self.reading, NumericReading) else None

    @property
    def value_label(self) -> str | None:
        return self.reading.value if isinstance(self.reading, LabelReading) else None


class TimeSeriesPoint(BaseModel):
    """A single point of a metric's history joined with its build."""

    timestamp: datetime
    value_numeric: float | None = None
    value_label: str | None = None
    commit_sha: str
    branch: str
    run_number: int


class TimeSeriesData(BaseModel):
    """Full history of one metric, sorted ascending by build timestamp."""

    metric_name: str
    metric_type: MetricType
    unit: str | None = None
    description: str | None = None
    data_points: list[TimeSeriesPoint] = Field(default_factory=list)
