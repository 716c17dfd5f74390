"""Quality gate: baseline comparison and threshold evaluation."""

from buildtrend.quality_gate.comment import render_gate_comment
from buildtrend.quality_gate.evaluator import (
    calculate_median,
    evaluate_quality_gate,
    evaluate_threshold,
)
from buildtrend.quality_gate.models import (
    BaselineConfig,
    BaselineInfo,
    GateMode,
    GateStatus,
    GateSummary,
    MetricEvaluationResult,
    MetricSample,
    QualityGateConfig,
    QualityGateResult,
    Severity,
    ThresholdConfig,
    ThresholdMode,
)
from buildtrend.quality_gate.samples import build_samples, builds_considered

__all__ = [
    "BaselineConfig",
    "BaselineInfo",
    "GateMode",
    "GateStatus",
    "GateSummary",
    "MetricEvaluationResult",
    "MetricSample",
    "QualityGateConfig",
    "QualityGateResult",
    "Severity",
    "ThresholdConfig",
    "ThresholdMode",
    "build_samples",
    "builds_considered",
    "calculate_median",
    "evaluate_quality_gate",
    "evaluate_threshold",
    "render_gate_comment",
]
