"""Quality gate data models.

Threshold configuration, comparison samples and evaluation results.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from buildtrend.models.metrics import MetricType


class GateStatus(str, Enum):
    """Outcome of a metric evaluation or of the whole gate."""

    PASS = "pass"
    FAIL = "fail"
    UNKNOWN = "unknown"


class GateMode(str, Enum):
    """How the gate result is enforced by the surrounding process."""

    OFF = "off"
    SOFT = "soft"
    HARD = "hard"


class ThresholdMode(str, Enum):
    """Comparison rule applied to a metric."""

    MIN = "min"
    MAX = "max"
    NO_REGRESSION = "no-regression"
    DELTA_MAX_DROP = "delta-max-drop"


class Severity(str, Enum):
    """Whether a threshold violation fails the gate."""

    WARNING = "warning"
    BLOCKING = "blocking"


class ThresholdConfig(BaseModel):
    """Threshold for a single metric."""

    metric: str = Field(..., min_length=1)
    mode: ThresholdMode
    target: float | None = None
    tolerance: float | None = Field(default=None, ge=0)
    max_drop_percent: float | None = Field(default=None, ge=0)
    severity: Severity = Severity.BLOCKING


class BaselineConfig(BaseModel):
    """Which history the current run is compared against."""

    reference_branch: str | None = None
    max_builds: int = Field(default=20, ge=1)
    max_age_days: int = Field(default=90, ge=1)


class QualityGateConfig(BaseModel):
    """Quality gate configuration."""

    mode: GateMode = GateMode.SOFT
    baseline: BaselineConfig = Field(default_factory=BaselineConfig)
    thresholds: list[ThresholdConfig] = Field(default_factory=list)

    @field_validator("thresholds")
    @classmethod
    def _unique_metrics(cls, thresholds: list[ThresholdConfig]) -> list[ThresholdConfig]:
        seen: set[str] = set()
        for threshold in thresholds:
            if threshold.metric in seen:
                msg = f"Duplicate threshold for metric '{threshold.metric}'"
                raise ValueError(msg)
            seen.add(threshold.metric)
        return thresholds


class MetricSample(BaseModel):
    """Current value of a numeric metric alongside its baseline history."""

    name: str
    unit: str | None = None
    type: MetricType = MetricType.NUMERIC
    baseline_values: list[float] = Field(default_factory=list)
    pull_request_value: float | None = None


class MetricEvaluationResult(BaseModel):
    """Evaluation outcome for one metric."""

    metric: str
    unit: str | None = None
    baseline_median: float | None = None
    pull_request_value: float | None = None
    absolute_delta: float | None = None
    relative_delta_percent: float | None = None
    threshold: ThresholdConfig | None = None
    status: GateStatus = GateStatus.UNKNOWN
    message: str | None = None
    is_blocking: bool = False


class GateSummary(BaseModel):
    """Counts of metric outcomes."""

    total: int = 0
    evaluated: int = 0
    passed: int = 0
    failed: int = 0
    unknown: int = 0


class BaselineInfo(BaseModel):
    """Describes the baseline window used for comparison."""

    reference_branch: str
    builds_considered: int = 0
    max_builds: int
    max_age_days: int


class QualityGateResult(BaseModel):
    """Aggregate result of a quality gate evaluation."""

    status: GateStatus
    mode: GateMode
    metrics: list[MetricEvaluationResult] = Field(default_factory=list)
    failing_metrics: list[MetricEvaluationResult] = Field(default_factory=list)
    summary: GateSummary = Field(default_factory=GateSummary)
    baseline_info: BaselineInfo
