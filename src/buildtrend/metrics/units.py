"""Unit-aware value formatting for reports and PR comments.

Supported units: percent, integer, bytes, duration (seconds) and decimal.
Any other unit, or none, falls back to two decimal places.
"""

import math
from typing import Literal

UnitType = Literal["percent", "integer", "bytes", "duration", "decimal"]

_KB = 1024
_MB = 1024 * 1024
_GB = 1024 * 1024 * 1024


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_value(value: float | None, unit: str | None) -> str:
    """Format a metric value for display.

    Examples:
        format_value(85.5, "percent") -> "85.5%"
        format_value(1234567, "integer") -> "1,234,567"
        format_value(1572864, "bytes") -> "1.5 MB"
        format_value(90, "duration") -> "1m 30s"
        format_value(None, "percent") -> "N/A"
    """
    if value is None:
        return "N/A"

    if unit == "percent":
        return f"{value:,.1f}%"
    if unit == "integer":
        return f"{_round_half_up(value):,}"
    if unit == "bytes":
        return format_bytes(value)
    if unit == "duration":
        return format_duration(value)
    return f"{value:,.2f}"


def format_delta(delta: float, unit: str | None) -> str:
    """Format a change with an explicit sign, e.g. "+2.5%" or "-256 KB"."""
    sign = "+" if delta >= 0 else ""
    return f"{sign}{format_value(delta, unit)}"


def _scaled(amount: float, suffix: str) -> str:
    # Whole numbers drop the decimal
    if amount % 1 == 0:
        return f"{amount:,.0f} {suffix}"
    return f"{amount:,.1f} {suffix}"


def format_bytes(value: float) -> str:
    """Format a byte count, scaling to KB/MB/GB at 1024 boundaries."""
    sign = "-" if value < 0 else ""
    size = abs(value)

    if size < _KB:
        return f"{sign}{_round_half_up(size)} B"
    if size < _MB:
        return sign + _scaled(size / _KB, "KB")
    if size < _GB:
        return sign + _scaled(size / _MB, "MB")
    return sign + _scaled(size / _GB, "GB")


def format_duration(seconds: float) -> str:
    """Format seconds as ms, s, "Xm Ys" or "Xh Ym"."""
    sign = "-" if seconds < 0 else ""
    total = abs(seconds)

    # Round before splitting so no component carries to 60 (or 1000ms)
    millis = _round_half_up(total * 1000)
    if millis < 1000:
        return f"{sign}{millis}ms"

    whole_seconds = _round_half_up(total)
    if whole_seconds < 60:
        return f"{sign}{whole_seconds}s"
    if whole_seconds < 3600:
        minutes, secs = divmod(whole_seconds, 60)
        return f"{sign}{minutes}m {secs}s"

    hours, minutes = divmod(_round_half_up(total / 60), 60)
    return f"{sign}{hours}h {minutes}m"
