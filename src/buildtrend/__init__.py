"""buildtrend: build metric tracking, quality gates and trend reports."""

__version__ = "0.1.0"
