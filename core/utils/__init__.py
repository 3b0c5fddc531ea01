"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: Timestamp conversion and normalization utilities
    - math: Statistics and score normalization helpers for the metrics engine
"""

from core.utils.time import to_utc_datetime, parse_timestamp

__all__ = ["to_utc_datetime", "parse_timestamp"]
