"""Database schema for the metrics store.

Three related tables: build contexts, metric definitions (unique by name) and
metric values referencing both.
"""

import logging
import sqlite3
from datetime import UTC, datetime

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"

# Fixed-width UTC format so timestamps sort lexicographically
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS metric_definitions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    type TEXT NOT NULL CHECK(type IN ('numeric', 'label')),
    unit TEXT,
    description TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS build_contexts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    commit_sha TEXT NOT NULL,
    branch TEXT NOT NULL,
    run_id TEXT NOT NULL,
    run_number INTEGER NOT NULL,
    actor TEXT,
    event_name TEXT,
    timestamp TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE(commit_sha, run_id)
);

CREATE INDEX IF NOT EXISTS idx_build_timestamp ON build_contexts(timestamp);
CREATE INDEX IF NOT EXISTS idx_build_branch ON build_contexts(branch);

CREATE TABLE IF NOT EXISTS metric_values (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    metric_id INTEGER NOT NULL REFERENCES metric_definitions(id),
    build_id INTEGER NOT NULL REFERENCES build_contexts(id),
    value_numeric REAL,
    value_label TEXT,
    collected_at TEXT NOT NULL,
    collection_duration_ms INTEGER,
    UNIQUE(metric_id, build_id),
    CHECK(
        (value_numeric IS NOT NULL AND value_label IS NULL) OR
        (value_numeric IS NULL AND value_label IS NOT NULL)
    )
);

CREATE INDEX IF NOT EXISTS idx_metric_value_build ON metric_values(build_id);
"""


def format_timestamp(value: datetime) -> str:
    """Convert a datetime to the stored UTC text form.

    Naive datetimes are treated as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime."""
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=UTC)


def initialize_schema(conn: sqlite3.Connection) -> None:
    """Create tables if needed and record the schema version.

    Args:
        conn: Open database connection.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            version TEXT PRIMARY KEY,
            applied_at TEXT NOT NULL,
            description TEXT
        )
        """
    )

    row = conn.execute(
        "SELECT version FROM schema_version ORDER BY applied_at DESC LIMIT 1"
    ).fetchone()
    if row is not None and row[0] == SCHEMA_VERSION:
        return

    conn.executescript(_SCHEMA_SQL)
    with conn:
        conn.execute(
            "INSERT OR IGNORE INTO schema_version (version, applied_at, description) "
            "VALUES (?, ?, ?)",
            (SCHEMA_VERSION, format_timestamp(datetime.now(UTC)), "Initial schema"),
        )
    logger.debug("Initialized metrics schema version %s", SCHEMA_VERSION)
