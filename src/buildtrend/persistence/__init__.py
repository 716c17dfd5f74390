"""Persistence module for storing and querying build metrics."""

from buildtrend.persistence.context import branch_from_ref, detect_build_context
from buildtrend.persistence.schema import SCHEMA_VERSION
from buildtrend.persistence.store import MetricsStore

__all__ = [
    "SCHEMA_VERSION",
    "MetricsStore",
    "branch_from_ref",
    "detect_build_context",
]
