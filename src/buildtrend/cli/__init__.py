"""Command-line interface for buildtrend."""
