"""
Unit Tests for Time Utilities

Run with:
    pytest tests/unit/test_time_utils.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.utils.time import datetime_to_timestamp, parse_timestamp, to_utc_datetime


EXPECTED = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestToUtcDatetime:
    """Tests for epoch conversion"""

    def test_seconds(self):
        assert to_utc_datetime(1704110400) == EXPECTED

    def test_milliseconds(self):
        assert to_utc_datetime(1704110400000) == EXPECTED

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_utc_datetime(-1)


class TestParseTimestamp:
    """Tests for shape-tolerant timestamp parsing"""

    def test_iso_with_zulu(self):
        assert parse_timestamp("2024-01-01T12:00:00Z") == EXPECTED

    def test_iso_with_offset_converted_to_utc(self):
        parsed = parse_timestamp("2024-01-01T14:00:00+02:00")
        assert parsed == EXPECTED
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_iso_taken_as_utc(self):
        assert parse_timestamp("2024-01-01T12:00:00") == EXPECTED

    def test_numeric_string(self):
        assert parse_timestamp("1704110400000") == EXPECTED

    def test_datetime_passthrough(self):
        assert parse_timestamp(EXPECTED) == EXPECTED

    @pytest.mark.parametrize("value", ["", "   ", True, None, "not a date", [1]])
    def test_invalid_values_rejected(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestDatetimeToTimestamp:
    """Tests for the reverse conversion"""

    def test_seconds_and_millis(self):
        assert datetime_to_timestamp(EXPECTED) == 1704110400
        assert datetime_to_timestamp(EXPECTED, milliseconds=True) == 1704110400000
