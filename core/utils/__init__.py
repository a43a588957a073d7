"""
Core Utilities Package

Modules:
    - time: Timestamp conversion and normalization utilities
"""

from core.utils.time import (
    to_utc_datetime,
    datetime_to_timestamp,
    current_utc_timestamp,
    parse_exchange_timestamp,
)

__all__ = [
    "to_utc_datetime",
    "datetime_to_timestamp",
    "current_utc_timestamp",
    "parse_exchange_timestamp",
]
