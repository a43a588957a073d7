"""
Unit Tests for Time Utilities

Run with:
    pytest tests/unit/test_time_utils.py -v
"""

from datetime import datetime, timezone

import pytest

from core.utils.time import datetime_to_timestamp, parse_exchange_timestamp, to_utc_datetime


class TestToUtcDatetime:
    """Tests for to_utc_datetime()"""

    def test_seconds_and_milliseconds_agree(self):
        assert to_utc_datetime(1704110400) == to_utc_datetime(1704110400000)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_utc_datetime(-1)


class TestParseExchangeTimestamp:
    """Tests for parse_exchange_timestamp()"""

    def test_bitflyer_seven_digit_fraction(self):
        """Verify 100 ns precision is truncated to microseconds"""
        parsed = parse_exchange_timestamp("2019-04-11T05:14:12.3739915Z")

        assert parsed == datetime(2019, 4, 11, 5, 14, 12, 373991, tzinfo=timezone.utc)

    def test_naive_iso_assumed_utc(self):
        parsed = parse_exchange_timestamp("2024-01-01T12:00:00")

        assert parsed.tzinfo is not None
        assert datetime_to_timestamp(parsed) == 1704110400

    def test_numeric_string(self):
        assert parse_exchange_timestamp("1704110400") == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_datetime_passthrough(self):
        naive = datetime(2024, 1, 1, 12)
        assert parse_exchange_timestamp(naive) == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_exchange_timestamp("yesterday-ish")
