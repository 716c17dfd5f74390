"""Markdown rendering of quality gate results for pull request comments."""

from buildtrend.metrics.units import format_delta, format_value
from buildtrend.quality_gate.models import GateMode, GateStatus, QualityGateResult

DEFAULT_MARKER = "<!-- buildtrend-quality-gate -->"
DEFAULT_MAX_METRICS = 30
_PREVIEW_METRICS = 5

_STATUS_BADGES = {
    GateStatus.PASS: "**PASS** ✅",
    GateStatus.FAIL: "**FAIL** ❌",
    GateStatus.UNKNOWN: "**UNKNOWN** ⚠️",
}

_STATUS_ICONS = {
    GateStatus.PASS: "✅",
    GateStatus.FAIL: "❌",
    GateStatus.UNKNOWN: "⚠️",
}


def _no_baseline_section(result: QualityGateResult) -> list[str]:
    lines = [
        "## 🛡️ Quality Gate: **UNKNOWN** ⚠️",
        "",
        "### No Baseline Data Available",
        "",
        "This appears to be the first pull request, or baseline data is not yet available.",
        "Metrics were collected successfully, but there is no reference baseline "
        "to compare against.",
        "",
    ]

    if result.metrics:
        lines.append(f"**Collected Metrics** ({len(result.metrics)}):")
        for metric in result.metrics[:_PREVIEW_METRICS]:
            if metric.pull_request_value is not None:
                value = format_value(metric.pull_request_value, metric.unit)
                lines.append(f"- {metric.metric}: {value}")
        if len(result.metrics) > _PREVIEW_METRICS:
            lines.extend(["", f"_...and {len(result.metrics) - _PREVIEW_METRICS} more metrics_"])

    lines.extend(
        [
            "",
            f"Once `{result.baseline_info.reference_branch}` has metrics data, future pull "
            "requests will be evaluated against that baseline.",
        ]
    )
    return lines


def _evaluation_section(result: QualityGateResult, max_metrics: int) -> list[str]:
    info = result.baseline_info
    lines = [
        f"## 🛡️ Quality Gate: {_STATUS_BADGES[result.status]}",
        "",
        f"**Mode**: {result.mode.value} • **Reference**: {info.reference_branch} • "
        f"**Builds**: {info.builds_considered}/{info.max_builds}",
        "",
    ]

    if result.failing_metrics:
        lines.extend(["### 🔴 Blocking Violations", ""])
        for metric in result.failing_metrics:
            lines.append(f"- **{metric.metric}**: {metric.message}")
        lines.append("")

    lines.extend(
        [
            "### Threshold Evaluation",
            "",
            "| Metric | Baseline | PR Value | Δ | Status | Threshold |",
            "|--------|----------|----------|---|--------|-----------|",
        ]
    )

    for metric in result.metrics[:max_metrics]:
        delta = (
            format_delta(metric.absolute_delta, metric.unit)
            if metric.absolute_delta is not None
            else "N/A"
        )
        if metric.threshold is None:
            threshold = "none"
        elif metric.threshold.target is not None:
            threshold = f"{metric.threshold.mode.value}: {metric.threshold.target:g}"
        else:
            threshold = metric.threshold.mode.value

        lines.append(
            f"| {metric.metric} "
            f"| {format_value(metric.baseline_median, metric.unit)} "
            f"| {format_value(metric.pull_request_value, metric.unit)} "
            f"| {delta} "
            f"| {_STATUS_ICONS[metric.status]} {metric.status.value.upper()} "
            f"| {threshold} |"
        )

    if len(result.metrics) > max_metrics:
        lines.extend(["", f"_...and {len(result.metrics) - max_metrics} more metrics_"])

    summary = result.summary
    lines.extend(
        [
            "",
            "### Summary",
            f"- **Evaluated**: {summary.evaluated} of {summary.total} metrics have thresholds",
            f"- **Passed**: {summary.passed} metrics",
            f"- **Failed**: {summary.failed} metrics",
            f"- **Unknown**: {summary.unknown} metrics",
        ]
    )
    return lines


def render_gate_comment(
    result: QualityGateResult,
    marker: str = DEFAULT_MARKER,
    max_metrics: int = DEFAULT_MAX_METRICS,
) -> str:
    """Render a gate result as a Markdown PR comment body.

    Args:
        result: Gate result to render.
        marker: Hidden marker used to find and update an existing comment.
        max_metrics: Maximum rows in the threshold table.

    Returns:
        The comment body.
    """
    lines = [marker, ""]

    if result.summary.total == 0 or result.baseline_info.builds_considered == 0:
        lines.extend(_no_baseline_section(result))
    else:
        lines.extend(_evaluation_section(result, max_metrics))

    lines.extend(
        [
            "",
            "---",
            "<details>",
            "<summary>ℹ️ What is this?</summary>",
            "",
            "This is an automated quality gate check. It compares the metrics of this pull "
            f"request against the baseline from the `{result.baseline_info.reference_branch}` "
            "branch.",
            "",
        ]
    )

    mode_line = f"**Current mode: {result.mode.value}**"
    if result.mode == GateMode.SOFT:
        mode_line += " - This check is informational only and won't block your PR."
    elif result.mode == GateMode.HARD:
        mode_line += " - This check may block your PR if blocking thresholds are violated."
    lines.extend([mode_line, "</details>", ""])

    return "\n".join(lines)
