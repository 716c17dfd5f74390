"""Analysis module for summary statistics and trend detection."""

from buildtrend.analysis.models import SummaryStats, TrendDirection
from buildtrend.analysis.trends import TrendAnalyzer, calculate_summary_stats

__all__ = [
    "SummaryStats",
    "TrendAnalyzer",
    "TrendDirection",
    "calculate_summary_stats",
]
