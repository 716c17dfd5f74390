"""Built-in metric templates.

The registry is a read-only mapping handed explicitly to the configuration
layer; nothing in the analysis pipeline reads it.
"""

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from buildtrend.models.metrics import MetricType


class MetricTemplate(BaseModel):
    """Reusable definition of a commonly tracked metric."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    type: MetricType
    command: str
    unit: str | None = None


def _template(**fields: object) -> tuple[str, MetricTemplate]:
    template = MetricTemplate.model_validate(fields)
    return template.id, template


BUILT_IN_METRICS: Mapping[str, MetricTemplate] = MappingProxyType(
    dict(
        [
            _template(
                id="coverage",
                name="coverage",
                description="Overall test coverage percentage across the codebase",
                type="numeric",
                command="coverage report --format=total",
                unit="percent",
            ),
            _template(
                id="function-coverage",
                name="function-coverage",
                description="Percentage of functions covered by tests",
                type="numeric",
                command="coverage json -o - | jq -r '.totals.percent_covered'",
                unit="percent",
            ),
            _template(
                id="loc",
                name="loc",
                description="Total lines of code in the codebase",
                type="numeric",
                command="find src/ -name '*.py' | xargs wc -l | tail -1 | awk '{print $1}'",
                unit="integer",
            ),
            _template(
                id="bundle-size",
                name="bundle-size",
                description="Total size of production build artifacts",
                type="numeric",
                command="du -sb dist/ | awk '{print $1}'",
                unit="bytes",
            ),
            _template(
                id="build-time",
                name="build-time",
                description="Time taken to complete the build",
                type="numeric",
                command="/usr/bin/time -f %e python -m build 2>&1 >/dev/null | tail -1",
                unit="duration",
            ),
            _template(
                id="test-time",
                name="test-time",
                description="Time taken to run all tests",
                type="numeric",
                command="/usr/bin/time -f %e pytest -q 2>&1 >/dev/null | tail -1",
                unit="duration",
            ),
            _template(
                id="dependencies-count",
                name="dependencies-count",
                description="Total number of installed dependencies",
                type="numeric",
                command="pip list --format=freeze | wc -l",
                unit="integer",
            ),
        ]
    )
)


def get_built_in_metric(metric_id: str) -> MetricTemplate | None:
    """Look up a built-in template by ID."""
    return BUILT_IN_METRICS.get(metric_id)


def list_built_in_metric_ids() -> list[str]:
    """IDs of all built-in templates."""
    return list(BUILT_IN_METRICS)
