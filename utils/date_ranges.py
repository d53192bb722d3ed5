"""
Date range arithmetic for reservations.

Reservations are half-open ranges [start, end): the end date is the
checkout day and is not a billed night.
"""

import math
from datetime import date, datetime, timedelta


DATE_FORMAT = '%Y-%m-%d'


def parse_date(value) -> date:
    """
    Coerce a date, datetime or ISO string into a date.

    Args:
        value: date, datetime, or 'YYYY-MM-DD' (a trailing time part is ignored)

    Returns:
        date

    Raises:
        ValueError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return datetime.strptime(value[:10], DATE_FORMAT).date()
    raise ValueError(f'Invalid date: {value!r}')


def to_iso(value) -> str:
    """Format a date-like value as YYYY-MM-DD."""
    return parse_date(value).strftime(DATE_FORMAT)


def nights_between(start, end) -> int:
    """
    Number of nights in [start, end), rounded up.

    Args:
        start: Check-in date
        end: Check-out date

    Returns:
        int: Nights (may be zero or negative for inverted ranges)
    """
    delta = parse_date(end) - parse_date(start)
    return math.ceil(delta.total_seconds() / 86400)


def each_night(start, end) -> list:
    """
    ISO dates of every night in [start, end).

    Example:
        each_night('2024-08-01', '2024-08-04')
        -> ['2024-08-01', '2024-08-02', '2024-08-03']
    """
    current = parse_date(start)
    stop = parse_date(end)
    nights = []
    while current < stop:
        nights.append(current.strftime(DATE_FORMAT))
        current += timedelta(days=1)
    return nights


def shift_range(start, days: int, duration: int) -> tuple:
    """
    Build a range starting `days` away from `start` lasting `duration` nights.

    Returns:
        tuple: (new_start: date, new_end: date)
    """
    new_start = parse_date(start) + timedelta(days=days)
    return new_start, new_start + timedelta(days=duration)


def is_same_day(first, second) -> bool:
    """True when both values fall on the same calendar day."""
    return parse_date(first) == parse_date(second)
