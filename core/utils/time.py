"""
Time Utilities

Exchanges report event times in different formats:
- bitFlyer: ISO 8601 strings with 7 fractional digits ("2019-04-11T05:14:12.3739915Z")
- Liquid: seconds since epoch (e.g., 1704110400)
- Some feeds: milliseconds since epoch

The feed client keeps second-resolution unix timestamps for latency
bookkeeping and timezone-aware UTC datetimes for execution windows. The
helpers in this module convert between those representations.
"""

from datetime import datetime, timezone
from typing import Union

from dateutil import parser as dateparser


def to_utc_datetime(timestamp: Union[int, float]) -> datetime:
    """
    Unix seconds or milliseconds to an aware UTC datetime.

    Values above 1e12 are read as milliseconds (Liquid's created_at is in
    seconds, some REST payloads use milliseconds).

    Raises:
        ValueError: If the timestamp is negative or out of range
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    seconds = timestamp / 1000.0 if timestamp > 1e12 else timestamp
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")


def datetime_to_timestamp(dt: datetime, milliseconds: bool = False) -> int:
    """Whole unix seconds (or ms) for dt; naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    seconds = int(dt.timestamp())
    return seconds * 1000 if milliseconds else seconds


def current_utc_timestamp(milliseconds: bool = False) -> int:
    """
    Get current UTC timestamp.

    This is the default clock of the feed client (second resolution).

    Args:
        milliseconds: If True, return milliseconds; if False, return seconds

    Returns:
        int: Current Unix timestamp
    """
    return datetime_to_timestamp(datetime.now(timezone.utc), milliseconds)


def parse_exchange_timestamp(value: Union[str, int, float, datetime]) -> datetime:
    """
    Normalize an exchange event time into a UTC datetime.

    Args:
        value: ISO 8601 string, unix seconds/milliseconds, or datetime

    Returns:
        datetime: Timezone-aware datetime object in UTC

    Raises:
        ValueError: If the value cannot be parsed

    Examples:
        >>> parse_exchange_timestamp("2019-04-11T05:14:12.3739915Z")
        datetime.datetime(2019, 4, 11, 5, 14, 12, 373991, tzinfo=tzutc())

        >>> parse_exchange_timestamp(1704110400)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, (int, float)):
        return to_utc_datetime(value)

    text = str(value).strip()
    if text.replace(".", "", 1).isdigit():
        return to_utc_datetime(float(text))

    # dateutil truncates bitFlyer's 7-digit fractions to microseconds
    parsed = dateparser.isoparse(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
