"""
Time Utilities

This module provides utilities for handling timestamps from the upstream API.

The upstream is inconsistent about how it reports time:
- Trades may carry an ISO-8601 string (e.g., "2024-01-01T12:00:00.000Z")
- or an epoch-millisecond integer (e.g., 1704110400000)
- occasionally as a numeric string (e.g., "1704110400000")

The utilities in this module normalize all of these into timezone-aware
UTC datetime objects for use in our Pydantic schemas.
"""

from datetime import datetime, timezone
from typing import Any, Union

from dateutil import parser as dateparser


def to_utc_datetime(timestamp: Union[int, float]) -> datetime:
    """
    Convert a timestamp (seconds or milliseconds) to UTC datetime.

    Detection Logic:
        - If timestamp > 1e12 (1 trillion): Assumed to be milliseconds
        - Otherwise: Assumed to be seconds

    Args:
        timestamp: Unix timestamp in seconds or milliseconds

    Returns:
        datetime: Timezone-aware datetime object in UTC

    Raises:
        ValueError: If timestamp is negative or invalid

    Examples:
        >>> to_utc_datetime(1704110400000)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

        >>> to_utc_datetime(1704110400)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    if timestamp > 1e12:
        timestamp = timestamp / 1000.0

    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")


def parse_timestamp(value: Any) -> datetime:
    """
    Normalize an upstream timestamp of any supported shape to UTC datetime.

    Args:
        value: ISO-8601 string, epoch number, numeric string, or datetime

    Returns:
        datetime: Timezone-aware datetime in UTC (naive inputs are taken as UTC)

    Raises:
        ValueError: If the value is empty, of an unsupported type, or unparseable

    Examples:
        >>> parse_timestamp("2024-01-01T12:00:00Z")
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=tzutc())
        >>> parse_timestamp(1704110400000)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    elif isinstance(value, (int, float)):
        return to_utc_datetime(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Timestamp string is empty")
        if text.isdigit():
            return to_utc_datetime(int(text))
        try:
            dt = dateparser.isoparse(text)
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid ISO timestamp: {value!r}. Error: {e}")
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def datetime_to_timestamp(dt: datetime, milliseconds: bool = False) -> int:
    """
    Convert a datetime object to Unix timestamp.

    Args:
        dt: Datetime object (can be naive or timezone-aware)
        milliseconds: If True, return milliseconds; if False, return seconds

    Returns:
        int: Unix timestamp in seconds or milliseconds

    Notes:
        - If datetime is naive (no timezone), UTC is assumed
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    timestamp = int(dt.timestamp())

    if milliseconds:
        timestamp *= 1000

    return timestamp


def current_utc_datetime() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        datetime: Current time as timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)
