"""
Week arithmetic for report accounting.

Weeks run Monday 00:00:00 through Sunday 23:59:59 (UTC). A week is identified
by the timestamp of its Monday at midnight.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Union

Timestamp = Union[datetime, date]

ONE_WEEK = timedelta(days=7)


def to_naive_utc(ts: Timestamp) -> datetime:
    """Normalize to a naive UTC datetime. Naive input is assumed to be UTC already."""
    if not isinstance(ts, datetime):
        return datetime.combine(ts, time.min)
    if ts.tzinfo is not None:
        return ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def week_start(ts: Timestamp) -> datetime:
    """
    Monday 00:00 of the week containing ts.

    Sunday belongs to the week that started six days earlier.
    """
    ts = to_naive_utc(ts)
    monday = ts - timedelta(days=ts.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def week_key(ts: Timestamp) -> str:
    """ISO date of the week's Monday, e.g. "2024-01-08"."""
    return week_start(ts).date().isoformat()


def expected_weeks(created_at: Timestamp, reference: Timestamp) -> List[datetime]:
    """
    Every week identifier from the creation week through the reference week, inclusive.

    Returns an empty list when created_at is after reference.
    """
    created_at = to_naive_utc(created_at)
    reference = to_naive_utc(reference)
    if created_at > reference:
        return []

    weeks = []
    current = week_start(created_at)
    end = week_start(reference)
    while current <= end:
        weeks.append(current)
        current += ONE_WEEK
    return weeks
