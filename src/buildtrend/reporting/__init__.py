"""Reporting module for deriving and rendering metric trend reports."""

from buildtrend.reporting.charts import (
    ChartConfig,
    build_bar_chart,
    build_chart_config,
    build_line_chart,
    metric_id,
)
from buildtrend.reporting.generator import (
    MetricReportData,
    ReportData,
    ReportMetadata,
    ReportOptions,
    build_report,
    build_report_data,
)
from buildtrend.reporting.html_generator import HtmlReportGenerator

__all__ = [
    "ChartConfig",
    "HtmlReportGenerator",
    "MetricReportData",
    "ReportData",
    "ReportMetadata",
    "ReportOptions",
    "build_bar_chart",
    "build_chart_config",
    "build_line_chart",
    "build_report",
    "build_report_data",
    "metric_id",
]
