"""Configuration file support for buildtrend."""

from buildtrend.config.loader import (
    ConfigLoader,
    DatabaseConfig,
    FileConfig,
    MetricConfig,
    ReportConfig,
    load_config,
)

__all__ = [
    "ConfigLoader",
    "DatabaseConfig",
    "FileConfig",
    "MetricConfig",
    "ReportConfig",
    "load_config",
]
