"""Tests for metric data models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from buildtrend.models import (
    BuildContext,
    CollectedMetric,
    LabelReading,
    MetricSpec,
    MetricType,
    NumericReading,
    reading_type,
)


class TestMetricReading:
    """Tests for the numeric/label reading variant."""

    def test_reading_type(self) -> None:
        """reading_type maps each variant to its metric type."""
        assert reading_type(NumericReading(value=1.5)) == MetricType.NUMERIC
        assert reading_type(LabelReading(value="ok")) == MetricType.LABEL

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_numeric_reading_rejects_non_finite(self, value: float) -> None:
        """NaN and infinity are not valid metric values."""
        with pytest.raises(ValidationError):
            NumericReading(value=value)


class TestCollectedMetric:
    """Tests for the collector wire format."""

    def test_numeric_wire_format(self) -> None:
        """value_numeric becomes a numeric reading."""
        metric = CollectedMetric.model_validate(
            {
                "definition": {"name": "coverage", "type": "numeric", "unit": "percent"},
                "value_numeric": 85.5,
            }
        )

        assert isinstance(metric.reading, NumericReading)
        assert metric.value_numeric == 85.5
        assert metric.value_label is None

    def test_label_wire_format(self) -> None:
        """value_label becomes a label reading."""
        metric = CollectedMetric.model_validate(
            {"definition": {"name": "status", "type": "label"}, "value_label": "green"}
        )

        assert isinstance(metric.reading, LabelReading)
        assert metric.value_label == "green"
        assert metric.value_numeric is None

    def test_missing_value_is_allowed(self) -> None:
        """A collector that produced nothing yields no reading."""
        metric = CollectedMetric.model_validate(
            {"definition": {"name": "coverage", "type": "numeric"}}
        )
        assert metric.reading is None

    def test_both_values_rejected(self) -> None:
        """A metric cannot carry both a number and a label."""
        with pytest.raises(ValidationError, match="mutually exclusive"):
            CollectedMetric.model_validate(
                {
                    "definition": {"name": "coverage", "type": "numeric"},
                    "value_numeric": 1,
                    "value_label": "x",
                }
            )

    def test_type_mismatch_rejected(self) -> None:
        """A label value for a numeric metric is rejected."""
        with pytest.raises(ValidationError, match="declared numeric"):
            CollectedMetric.model_validate(
                {"definition": {"name": "coverage", "type": "numeric"}, "value_label": "high"}
            )

    def test_direct_construction(self) -> None:
        """Models can also be built directly with a reading."""
        metric = CollectedMetric(
            definition=MetricSpec(name="loc", type=MetricType.NUMERIC),
            reading=NumericReading(value=1200),
        )
        assert metric.value_numeric == 1200


class TestBuildContext:
    """Tests for BuildContext validation."""

    def test_required_fields(self) -> None:
        """Missing required fields fail validation."""
        with pytest.raises(ValidationError):
            BuildContext.model_validate({"commit_sha": "abc", "branch": "main"})

    def test_empty_strings_rejected(self) -> None:
        """Identifiers must not be empty."""
        with pytest.raises(ValidationError):
            BuildContext(
                commit_sha="",
                branch="main",
                run_id="1",
                run_number=1,
                timestamp=datetime.now(UTC),
            )

    def test_frozen(self) -> None:
        """Build contexts are immutable."""
        context = BuildContext(
            commit_sha="abc",
            branch="main",
            run_id="1",
            run_number=1,
            timestamp=datetime.now(UTC),
        )
        with pytest.raises(ValidationError):
            context.branch = "other"  # type: ignore[misc]
