"""Comparison sample construction.

Joins the current run's collected values with baseline history from the store.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from buildtrend.models.metrics import MetricType
from buildtrend.quality_gate.models import MetricSample

if TYPE_CHECKING:
    from buildtrend.models.metrics import CollectedMetric
    from buildtrend.persistence import MetricsStore

logger = logging.getLogger(__name__)


def build_samples(  # noqa: PLR0913
    collected: Iterable[CollectedMetric],
    store: MetricsStore,
    reference_branch: str,
    max_builds: int,
    max_age_days: int,
    *,
    exclude_build_id: int | None = None,
) -> list[MetricSample]:
    """Build quality gate samples for numeric metrics.

    Label metrics are skipped. A metric without history still yields a sample
    with an empty baseline so the gate can report it as unknown.

    Args:
        collected: Metrics collected for the current run.
        store: Store to read baseline values from.
        reference_branch: Branch the baseline is taken from.
        max_builds: Maximum number of baseline builds per metric.
        max_age_days: Maximum age of baseline builds.
        exclude_build_id: Current run's build ID if it was already recorded.

    Returns:
        One sample per numeric collected metric, in input order.
    """
    samples: list[MetricSample] = []

    for metric in collected:
        definition = metric.definition
        if definition.type != MetricType.NUMERIC:
            continue

        baseline = store.query_baseline(
            definition.name,
            reference_branch,
            max_builds,
            max_age_days,
            exclude_build_id=exclude_build_id,
        )
        if not baseline:
            logger.debug("No baseline history for '%s' on %s", definition.name, reference_branch)

        samples.append(
            MetricSample(
                name=definition.name,
                unit=definition.unit,
                type=MetricType.NUMERIC,
                baseline_values=baseline,
                pull_request_value=metric.value_numeric,
            )
        )

    return samples


def builds_considered(samples: Iterable[MetricSample]) -> int:
    """Largest baseline size across samples, or 0 when there are none."""
    return max((len(s.baseline_values) for s in samples), default=0)
