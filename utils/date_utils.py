"""
Date utilities for values read from order rows and query strings.
"""

from datetime import date, datetime
from typing import Optional, Union


def to_calendar_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    """
    Reduce a date-like value to a calendar date.

    - date(2024, 12, 24) → date(2024, 12, 24)
    - datetime(2024, 12, 24, 23, 30) → date(2024, 12, 24)
    - "2024-12-24", "2024-12-24T23:30:00Z" → date(2024, 12, 24)
    - None, "", "next week" → None

    datetimes keep their own wall-clock date with no timezone shift, so the
    weekday check and the blackout check always see the same day.

    Args:
        value: date, datetime, ISO string or None

    Returns:
        Calendar date, or None if the value is missing or unreadable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None
