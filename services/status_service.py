"""
Status and priority projection.

The only place that turns stage, cancellation and due date into the
status and priority shown to staff. Queue projection and routes call
these functions; nothing else re-derives them.
"""

from typing import Optional, Union
from datetime import date, datetime

from models.order import OrderStatus, Priority
from models.stage import Stage
from utils.date_utils import to_calendar_date

# Fixed business thresholds, in whole days until due
HIGH_PRIORITY_MAX_DAYS = 1
MEDIUM_PRIORITY_MAX_DAYS = 3


def derive_status(
    stage: Union[Stage, str, None],
    cancelled_at: Union[str, datetime, None],
) -> OrderStatus:
    """
    Derive the operational status of an order.

    Cancellation wins over every stage, Complete included: disordered
    external writes can leave an order both complete and cancelled.
    """
    if cancelled_at:
        return OrderStatus.CANCELLED
    if Stage.parse(stage) == Stage.COMPLETE:
        return OrderStatus.COMPLETED
    return OrderStatus.IN_PRODUCTION


def days_until_due(
    due_date: Union[date, datetime, str, None],
    today: Union[date, datetime, None] = None,
) -> Optional[int]:
    """Whole calendar days from today to the due date (negative if overdue)."""
    due = to_calendar_date(due_date)
    if due is None:
        return None
    current = to_calendar_date(today) or date.today()
    return (due - current).days


def derive_priority(
    due_date: Union[date, datetime, str, None],
    today: Union[date, datetime, None] = None,
) -> Optional[Priority]:
    """
    Derive priority from the due date.

    - ≤ 1 day (today, tomorrow, overdue) → High
    - 2-3 days → Medium
    - > 3 days → Low
    - no due date → None; callers flag the order as needing attention

    Returns:
        Priority, or None when there is no usable due date
    """
    delta_days = days_until_due(due_date, today)
    if delta_days is None:
        return None
    if delta_days <= HIGH_PRIORITY_MAX_DAYS:
        return Priority.HIGH
    if delta_days <= MEDIUM_PRIORITY_MAX_DAYS:
        return Priority.MEDIUM
    return Priority.LOW


def needs_attention(due_date: Union[date, datetime, str, None]) -> bool:
    """True when the order has no usable due date, whatever its stage."""
    return to_calendar_date(due_date) is None
