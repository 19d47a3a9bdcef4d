"""
Calendar-date helpers shared by the calendar core.

Dates are plain ``datetime.date`` values (whole days, no time zone).
Strings are only accepted at the edges and must be ISO ``YYYY-MM-DD``.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterator


def parse_date(value) -> date:
    """
    Parse an ISO calendar date.

    Accepts ``date`` (returned as-is, a ``datetime`` is truncated to its
    date) or a ``YYYY-MM-DD`` string. A longer ISO timestamp keeps only its
    date part.

    Raises:
        ValueError: If the value is not a date or a parsable string
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected ISO date string, got: {value!r}")
    return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end inclusive; nothing if end < start."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()
