"""SQLite-backed metrics store.

Persists build contexts, metric definitions and metric values, and answers
the baseline and time-series queries used by the quality gate and reports.
Every write is committed before the call returns. Moving the database file
between CI runs (artifacts, object storage) and locking across concurrent
runs are left to the surrounding transport.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from buildtrend.exceptions import (
    NotFoundError,
    StorageError,
    ValidationError,
    connection_failure,
    corrupted_database,
    permission_denied,
    timeout,
)
from buildtrend.models.metrics import (
    BuildContext,
    CollectedMetric,
    LabelReading,
    MetricDefinition,
    MetricType,
    MetricValue,
    NumericReading,
    TimeSeriesData,
    TimeSeriesPoint,
    reading_type,
)
from buildtrend.persistence.schema import format_timestamp, initialize_schema, parse_timestamp

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


def _translate_sqlite_error(operation: str, error: sqlite3.Error, db_path: str) -> StorageError:
    """Map a sqlite3 error onto a typed storage error."""
    message = str(error).lower()
    details = {"operation": operation, "path": db_path, "original_error": str(error)}

    if "locked" in message or "busy" in message:
        return timeout(operation, details)
    if "readonly" in message or "read-only" in message or "permission" in message:
        return permission_denied(f"Cannot write to metrics database: {db_path}", details)
    if "not a database" in message or "malformed" in message or "corrupt" in message:
        return corrupted_database(f"Metrics database is corrupted: {db_path}", details)
    if "unable to open" in message:
        return connection_failure(f"Unable to open metrics database: {db_path}", details)
    return StorageError(f"{operation} failed: {error}", details=details)


def _validation_fields(error: PydanticValidationError) -> list[str]:
    return [".".join(str(part) for part in err["loc"]) for err in error.errors()]


class MetricsStore:
    """Embedded relational store for build metrics."""

    def __init__(self, db_path: Path | str, *, busy_timeout: float = 5.0) -> None:
        """Open (and create if needed) a metrics database.

        Args:
            db_path: Database file path, or ":memory:" for a transient store.
            busy_timeout: Seconds to wait on a locked database before failing.

        Raises:
            StorageError: If the database cannot be opened or is corrupted.
        """
        self._db_path = str(db_path)
        self._in_transaction = False

        if self._db_path != IN_MEMORY:
            try:
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                msg = f"Cannot create directory for metrics database: {self._db_path}"
                raise permission_denied(msg, {"original_error": str(e)}) from e

        with self._guard("open database"):
            self._conn = sqlite3.connect(self._db_path, timeout=busy_timeout)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            initialize_schema(self._conn)

    @property
    def path(self) -> str:
        return self._db_path

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def __enter__(self) -> MetricsStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        """Translate sqlite3 errors raised inside the block."""
        try:
            yield
        except sqlite3.IntegrityError as e:
            msg = f"{operation} violates a store constraint: {e}"
            raise ValidationError(msg, details={"operation": operation}) from e
        except sqlite3.Error as e:
            raise _translate_sqlite_error(operation, e, self._db_path) from e

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Run the block in a transaction, joining an enclosing one if present."""
        if self._in_transaction:
            yield self._conn
            return

        self._in_transaction = True
        try:
            with self._guard(operation), self._conn:
                yield self._conn
        finally:
            self._in_transaction = False

    # Writes

    def record_build(self, context: BuildContext | Mapping[str, Any]) -> int:
        """Insert a new build context.

        Args:
            context: Build metadata; mappings are validated into a BuildContext.

        Returns:
            The new build ID.

        Raises:
            ValidationError: If required fields are missing or the
                (commit_sha, run_id) pair was already recorded.
        """
        if not isinstance(context, BuildContext):
            try:
                context = BuildContext.model_validate(context)
            except PydanticValidationError as e:
                msg = f"Invalid build context: {e}"
                raise ValidationError(msg, details={"fields": _validation_fields(e)}) from e

        with self._transaction("record build") as conn:
            cursor = conn.execute(
                """
                INSERT INTO build_contexts (
                    commit_sha, branch, run_id, run_number, actor, event_name,
                    timestamp, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    context.commit_sha,
                    context.branch,
                    context.run_id,
                    context.run_number,
                    context.actor,
                    context.event_name,
                    format_timestamp(context.timestamp),
                    format_timestamp(datetime.now(UTC)),
                ),
            )
        build_id = int(cursor.lastrowid or 0)
        logger.debug("Recorded build %d for %s on %s", build_id, context.commit_sha, context.branch)
        return build_id

    def upsert_definition(
        self,
        name: str,
        type: MetricType | str,  # noqa: A002
        unit: str | None = None,
        description: str | None = None,
    ) -> MetricDefinition:
        """Find a metric definition by name, creating it on first sighting.

        An existing definition always wins: its type, unit and description
        are returned unchanged even if the arguments differ.

        Returns:
            The stored definition.

        Raises:
            ValidationError: If the name is empty or the type is unknown.
        """
        if not name:
            raise ValidationError("Metric name must not be empty")
        try:
            metric_type = MetricType(type)
        except ValueError as e:
            msg = f"Unknown metric type '{type}' for metric '{name}'"
            raise ValidationError(msg, details={"metric": name}) from e

        existing = self.get_definition(name)
        if existing is not None:
            if existing.type != metric_type or (unit is not None and existing.unit != unit):
                logger.warning(
                    "Metric '%s' already defined as %s (unit=%s); keeping existing definition",
                    name,
                    existing.type.value,
                    existing.unit,
                )
            return existing

        created_at = datetime.now(UTC)
        with self._transaction("create metric definition") as conn:
            cursor = conn.execute(
                """
                INSERT INTO metric_definitions (name, type, unit, description, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (name, metric_type.value, unit, description, format_timestamp(created_at)),
            )
        logger.debug("Created metric definition '%s' (%s)", name, metric_type.value)
        return MetricDefinition(
            id=int(cursor.lastrowid or 0),
            name=name,
            type=metric_type,
            unit=unit,
            description=description,
            created_at=parse_timestamp(format_timestamp(created_at)),
        )

    def record_value(
        self,
        metric_id: int,
        build_id: int,
        value: NumericReading | LabelReading | float | str,
        *,
        collected_at: datetime | None = None,
        collection_duration_ms: int | None = None,
    ) -> int:
        """Insert one metric value for a build.

        Args:
            metric_id: ID of the metric definition.
            build_id: ID of the build context.
            value: A reading, or a plain number/string matching the metric type.
            collected_at: Collection time (defaults to now).
            collection_duration_ms: Optional time the collector took.

        Returns:
            The new value ID.

        Raises:
            NotFoundError: If the metric or build does not exist.
            ValidationError: If the value does not match the metric's type or
                a value was already recorded for this metric and build.
        """
        definition = self._get_definition_by_id(metric_id)
        if definition is None:
            msg = f"Metric definition {metric_id} not found"
            raise NotFoundError(msg, details={"metric_id": metric_id})
        if self.get_build(build_id) is None:
            msg = f"Build {build_id} not found"
            raise NotFoundError(msg, details={"build_id": build_id})

        reading = self._coerce_reading(definition, value)
        if reading_type(reading) != definition.type:
            msg = (
                f"Metric '{definition.name}' is {definition.type.value}; "
                f"cannot store a {reading.kind} value"
            )
            raise ValidationError(msg, details={"metric": definition.name})

        numeric = reading.value if isinstance(reading, NumericReading) else None
        label = reading.value if isinstance(reading, LabelReading) else None

        with self._transaction("record metric value") as conn:
            cursor = conn.execute(
                """
                INSERT INTO metric_values (
                    metric_id, build_id, value_numeric, value_label,
                    collected_at, collection_duration_ms
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    metric_id,
                    build_id,
                    numeric,
                    label,
                    format_timestamp(collected_at or datetime.now(UTC)),
                    collection_duration_ms,
                ),
            )
        return int(cursor.lastrowid or 0)

    def record_run(
        self,
        context: BuildContext | Mapping[str, Any],
        collected: Iterable[CollectedMetric],
    ) -> int:
        """Record a build and all of its collected metrics in one transaction.

        Metrics without a reading still get a definition but no value.

        Returns:
            The new build ID.
        """
        with self._transaction("record run"):
            build_id = self.record_build(context)
            stored = 0
            for metric in collected:
                spec = metric.definition
                definition = self.upsert_definition(
                    spec.name, spec.type, spec.unit, spec.description
                )
                if metric.reading is None:
                    logger.debug("No value collected for '%s'; skipping", spec.name)
                    continue
                self.record_value(
                    definition.id,
                    build_id,
                    metric.reading,
                    collected_at=metric.collected_at,
                    collection_duration_ms=metric.collection_duration_ms,
                )
                stored += 1

        logger.info("Recorded build %d with %d metric value(s)", build_id, stored)
        return build_id

    @staticmethod
    def _coerce_reading(
        definition: MetricDefinition,
        value: NumericReading | LabelReading | float | str,
    ) -> NumericReading | LabelReading:
        if isinstance(value, NumericReading | LabelReading):
            return value
        if isinstance(value, bool):
            msg = f"Boolean is not a valid value for metric '{definition.name}'"
            raise ValidationError(msg, details={"metric": definition.name})
        try:
            if isinstance(value, int | float):
                return NumericReading(value=value)
            if isinstance(value, str):
                return LabelReading(value=value)
        except PydanticValidationError as e:
            msg = f"Invalid value for metric '{definition.name}': {value!r}"
            raise ValidationError(msg, details={"metric": definition.name}) from e
        msg = f"Unsupported value type {type(value).__name__} for metric '{definition.name}'"
        raise ValidationError(msg, details={"metric": definition.name})

    # Reads

    def get_definition(self, name: str) -> MetricDefinition | None:
        """Look up a metric definition by name."""
        with self._guard("get metric definition"):
            row = self._conn.execute(
                "SELECT * FROM metric_definitions WHERE name = ?", (name,)
            ).fetchone()
        return self._row_to_definition(row) if row else None

    def _get_definition_by_id(self, metric_id: int) -> MetricDefinition | None:
        with self._guard("get metric definition"):
            row = self._conn.execute(
                "SELECT * FROM metric_definitions WHERE id = ?", (metric_id,)
            ).fetchone()
        return self._row_to_definition(row) if row else None

    def list_definitions(self) -> list[MetricDefinition]:
        """Return all metric definitions sorted by name."""
        with self._guard("list metric definitions"):
            rows = self._conn.execute("SELECT * FROM metric_definitions ORDER BY name").fetchall()
        return [self._row_to_definition(row) for row in rows]

    def get_build(self, build_id: int) -> BuildContext | None:
        """Look up a build context by ID."""
        with self._guard("get build"):
            row = self._conn.execute(
                "SELECT * FROM build_contexts WHERE id = ?", (build_id,)
            ).fetchone()
        return self._row_to_build(row) if row else None

    def get_value(self, metric_id: int, build_id: int) -> MetricValue | None:
        """Look up the value recorded for a metric in a build."""
        with self._guard("get metric value"):
            row = self._conn.execute(
                "SELECT * FROM metric_values WHERE metric_id = ? AND build_id = ?",
                (metric_id, build_id),
            ).fetchone()
        if row is None:
            return None

        reading: NumericReading | LabelReading
        if row["value_numeric"] is not None:
            reading = NumericReading(value=row["value_numeric"])
        else:
            reading = LabelReading(value=row["value_label"])
        return MetricValue(
            id=row["id"],
            metric_id=row["metric_id"],
            build_id=row["build_id"],
            reading=reading,
            collected_at=parse_timestamp(row["collected_at"]),
            collection_duration_ms=row["collection_duration_ms"],
        )

    def list_builds(self) -> list[BuildContext]:
        """Return all build contexts, oldest first."""
        with self._guard("list builds"):
            rows = self._conn.execute(
                "SELECT * FROM build_contexts ORDER BY timestamp ASC, id ASC"
            ).fetchall()
        return [self._row_to_build(row) for row in rows]

    def query_baseline(  # noqa: PLR0913
        self,
        metric_name: str,
        branch: str,
        max_builds: int,
        max_age_days: int,
        *,
        exclude_build_id: int | None = None,
        now: datetime | None = None,
    ) -> list[float]:
        """Return recent numeric values of a metric on a branch.

        Values are ordered most-recent first (build timestamp descending).
        Callers should treat the result as a set of qualifying values and not
        rely on position.

        Args:
            metric_name: Metric to query.
            branch: Reference branch.
            max_builds: Maximum number of values to return.
            max_age_days: Ignore builds older than this many days.
            exclude_build_id: Build whose value must not be part of the baseline.
            now: Reference time for the age cutoff (defaults to now).

        Returns:
            Up to max_builds values; empty if the metric is unknown.
        """
        if max_builds <= 0:
            return []

        cutoff = (now or datetime.now(UTC)) - timedelta(days=max_age_days)

        with self._guard("query baseline"):
            rows = self._conn.execute(
                """
                SELECT mv.value_numeric
                FROM metric_values mv
                JOIN metric_definitions md ON md.id = mv.metric_id
                JOIN build_contexts bc ON bc.id = mv.build_id
                WHERE md.name = ?
                  AND bc.branch = ?
                  AND mv.value_numeric IS NOT NULL
                  AND bc.timestamp >= ?
                  AND (? IS NULL OR bc.id != ?)
                ORDER BY bc.timestamp DESC, bc.id DESC
                LIMIT ?
                """,
                (
                    metric_name,
                    branch,
                    format_timestamp(cutoff),
                    exclude_build_id,
                    exclude_build_id,
                    max_builds,
                ),
            ).fetchall()

        values = [float(row[0]) for row in rows]
        logger.debug(
            "Baseline for '%s' on %s: %d value(s)", metric_name, branch, len(values)
        )
        return values

    def query_time_series(self, metric_name: str) -> TimeSeriesData:
        """Return the full history of a metric, oldest build first.

        Raises:
            NotFoundError: If the metric name is unknown.
        """
        definition = self.get_definition(metric_name)
        if definition is None:
            msg = f"Metric '{metric_name}' not found"
            raise NotFoundError(msg, details={"metric": metric_name})

        with self._guard("query time series"):
            rows = self._conn.execute(
                """
                SELECT mv.value_numeric, mv.value_label,
                       bc.timestamp, bc.commit_sha, bc.branch, bc.run_number
                FROM metric_values mv
                JOIN build_contexts bc ON bc.id = mv.build_id
                WHERE mv.metric_id = ?
                ORDER BY bc.timestamp ASC, bc.id ASC
                """,
                (definition.id,),
            ).fetchall()

        return TimeSeriesData(
            metric_name=definition.name,
            metric_type=definition.type,
            unit=definition.unit,
            description=definition.description,
            data_points=[
                TimeSeriesPoint(
                    timestamp=parse_timestamp(row["timestamp"]),
                    value_numeric=row["value_numeric"],
                    value_label=row["value_label"],
                    commit_sha=row["commit_sha"],
                    branch=row["branch"],
                    run_number=row["run_number"],
                )
                for row in rows
            ],
        )

    @staticmethod
    def _row_to_definition(row: sqlite3.Row) -> MetricDefinition:
        return MetricDefinition(
            id=row["id"],
            name=row["name"],
            type=MetricType(row["type"]),
            unit=row["unit"],
            description=row["description"],
            created_at=parse_timestamp(row["created_at"]),
        )

    @staticmethod
    def _row_to_build(row: sqlite3.Row) -> BuildContext:
        return BuildContext(
            id=row["id"],
            commit_sha=row["commit_sha"],
            branch=row["branch"],
            run_id=row["run_id"],
            run_number=row["run_number"],
            actor=row["actor"],
            event_name=row["event_name"],
            timestamp=parse_timestamp(row["timestamp"]),
        )
