"""
Pydantic models and domain enums.
"""

from models.base import BaseSchema
from models.stage import (
    Stage,
    STAGE_ORDER,
    StageCommand,
    Transition,
    TRANSITIONS,
    is_valid_stage_transition,
    available_commands,
    resolve_scan_command,
)
from models.calendar import (
    WEEKDAY_NAMES,
    CalendarSettings,
    CalendarSettingsResponse,
    DueDateResponse,
    AvailableDatesResponse,
    DateAvailabilityResponse,
)
from models.order import (
    Store,
    DEFAULT_STORE,
    OrderStatus,
    Priority,
    DeliveryMethod,
    QueueItem,
    QueueListResponse,
    QueueStats,
    StageCommandRequest,
    StageCommandResponse,
)

__all__ = [
    # Base
    "BaseSchema",

    # Stages
    "Stage",
    "STAGE_ORDER",
    "StageCommand",
    "Transition",
    "TRANSITIONS",
    "is_valid_stage_transition",
    "available_commands",
    "resolve_scan_command",

    # Calendar
    "WEEKDAY_NAMES",
    "CalendarSettings",
    "CalendarSettingsResponse",
    "DueDateResponse",
    "AvailableDatesResponse",
    "DateAvailabilityResponse",

    # Orders
    "Store",
    "DEFAULT_STORE",
    "OrderStatus",
    "Priority",
    "DeliveryMethod",
    "QueueItem",
    "QueueListResponse",
    "QueueStats",
    "StageCommandRequest",
    "StageCommandResponse",
]
