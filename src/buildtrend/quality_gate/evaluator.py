"""Quality gate evaluation.

Compares current metric values against the median of their baseline using
configured thresholds. Missing data never raises: it produces an "unknown"
status, since absent history is the normal state of a new metric.
"""

from collections.abc import Sequence

from buildtrend.quality_gate.models import (
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

DEFAULT_TOLERANCE = 0.5


def _num(value: float) -> str:
    return f"{value:g}"


def calculate_median(values: Sequence[float]) -> float | None:
    """Median of the values, or None for an empty sequence."""
    if not values:
        return None

    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def _base_result(
    sample: MetricSample,
    baseline_median: float | None,
    threshold: ThresholdConfig | None,
) -> MetricEvaluationResult:
    """Start a result with deltas filled in when both values are known."""
    result = MetricEvaluationResult(
        metric=sample.name,
        unit=sample.unit,
        baseline_median=baseline_median,
        pull_request_value=sample.pull_request_value,
        threshold=threshold,
        is_blocking=threshold is not None and threshold.severity != Severity.WARNING,
    )

    if baseline_median is not None and sample.pull_request_value is not None:
        result.absolute_delta = sample.pull_request_value - baseline_median
        if baseline_median != 0:
            result.relative_delta_percent = result.absolute_delta / baseline_median * 100

    return result


def evaluate_threshold(
    sample: MetricSample,
    threshold: ThresholdConfig,
    baseline_median: float | None,
) -> MetricEvaluationResult:
    """Evaluate one sample against its threshold.

    Args:
        sample: Current value and baseline of the metric.
        threshold: Threshold configured for the metric.
        baseline_median: Median of the baseline values, if any.

    Returns:
        The evaluation result; status is unknown when data is missing.
    """
    result = _base_result(sample, baseline_median, threshold)
    current = sample.pull_request_value

    if current is None:
        result.message = "Metric value not available for pull request"
        return result
    if baseline_median is None:
        result.message = "Baseline data not available"
        return result

    name = sample.name

    if threshold.mode in (ThresholdMode.MIN, ThresholdMode.MAX):
        if threshold.target is None:
            result.message = "Threshold target not specified"
            return result
        target = _num(threshold.target)
        if threshold.mode == ThresholdMode.MIN:
            passed = current >= threshold.target
            failure = f"{name} ({_num(current)}) is below minimum threshold of {target}"
        else:
            passed = current <= threshold.target
            failure = f"{name} ({_num(current)}) exceeds maximum threshold of {target}"

    elif threshold.mode == ThresholdMode.NO_REGRESSION:
        tolerance = DEFAULT_TOLERANCE if threshold.tolerance is None else threshold.tolerance
        passed = current >= baseline_median - tolerance
        failure = (
            f"{name} regressed beyond tolerance ({_num(current)} vs baseline "
            f"{_num(baseline_median)}, tolerance: {_num(tolerance)})"
        )

    else:
        if threshold.max_drop_percent is None:
            result.message = "max_drop_percent not specified"
            return result
        if baseline_median == 0:
            result.message = "Cannot calculate percentage drop from zero baseline"
            return result
        if baseline_median < 0:
            result.message = "Cannot calculate percentage drop from a negative baseline"
            return result
        drop_percent = (baseline_median - current) / baseline_median * 100
        passed = drop_percent <= threshold.max_drop_percent
        failure = (
            f"{name} dropped by {drop_percent:.2f}%, exceeding max allowed drop of "
            f"{_num(threshold.max_drop_percent)}%"
        )

    if passed:
        result.status = GateStatus.PASS
    else:
        result.status = GateStatus.FAIL
        result.message = failure
    return result


def evaluate_quality_gate(
    samples: Sequence[MetricSample],
    config: QualityGateConfig,
    baseline_info: BaselineInfo,
) -> QualityGateResult:
    """Evaluate all samples and aggregate the gate status.

    Metrics without a threshold are reported as unknown and never block.
    The gate is unknown when no thresholds are configured, fails when any
    blocking threshold fails, passes when at least one metric had a threshold
    and none blocked, and is unknown otherwise.

    Args:
        samples: Comparison samples for the current run.
        config: Gate configuration.
        baseline_info: Baseline window description included in the result.

    Returns:
        The aggregated gate result.
    """
    if config.mode == GateMode.OFF:
        disabled = [
            MetricEvaluationResult(
                metric=sample.name,
                unit=sample.unit,
                pull_request_value=sample.pull_request_value,
                message="Quality gate disabled",
            )
            for sample in samples
        ]
        return QualityGateResult(
            status=GateStatus.UNKNOWN,
            mode=GateMode.OFF,
            metrics=disabled,
            summary=GateSummary(total=len(samples), unknown=len(samples)),
            baseline_info=baseline_info,
        )

    thresholds = {t.metric: t for t in config.thresholds}
    results: list[MetricEvaluationResult] = []

    for sample in samples:
        baseline_median = calculate_median(sample.baseline_values)
        threshold = thresholds.get(sample.name)
        if threshold is None:
            result = _base_result(sample, baseline_median, None)
            result.message = "No threshold configured for this metric"
        else:
            result = evaluate_threshold(sample, threshold, baseline_median)
        results.append(result)

    failing = [r for r in results if r.status == GateStatus.FAIL and r.is_blocking]
    summary = GateSummary(
        total=len(samples),
        evaluated=sum(1 for r in results if r.threshold is not None),
        passed=sum(1 for r in results if r.status == GateStatus.PASS),
        failed=sum(1 for r in results if r.status == GateStatus.FAIL),
        unknown=sum(1 for r in results if r.status == GateStatus.UNKNOWN),
    )

    if not config.thresholds:
        status = GateStatus.UNKNOWN
    elif failing:
        status = GateStatus.FAIL
    elif summary.evaluated > 0:
        status = GateStatus.PASS
    else:
        status = GateStatus.UNKNOWN

    return QualityGateResult(
        status=status,
        mode=config.mode,
        metrics=results,
        failing_metrics=failing,
        summary=summary,
        baseline_info=baseline_info,
    )
