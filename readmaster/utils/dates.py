# readmaster/utils/dates.py
"""
UTC calendar helpers.

Timestamps are persisted as naive UTC, so every helper here accepts either
naive (assumed UTC) or aware datetimes and returns naive UTC values.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day_utc(value: datetime) -> datetime:
    value = to_naive_utc(value)
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def day_range_utc(value: datetime) -> Tuple[datetime, datetime]:
    """Half-open [start, end) range covering the UTC day of ``value``."""
    start = start_of_day_utc(value)
    return start, start + timedelta(days=1)


def is_same_day_utc(first: Optional[datetime], second: Optional[datetime]) -> bool:
    if first is None or second is None:
        return False
    return start_of_day_utc(first) == start_of_day_utc(second)


def is_yesterday(value: datetime, reference: Optional[datetime] = None) -> bool:
    reference = reference or utcnow()
    return is_same_day_utc(value, to_naive_utc(reference) - timedelta(days=1))


def yesterday_range_utc(reference: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    reference = reference or utcnow()
    return day_range_utc(to_naive_utc(reference) - timedelta(days=1))
