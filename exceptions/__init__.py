"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,

    # Orders
    OrderNotFoundError,

    # Stage transitions
    InvalidStageTransitionError,
    StageTransitionRejectedError,

    # Calendar
    InvalidCalendarSettingsError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",

    # Orders
    "OrderNotFoundError",

    # Stage transitions
    "InvalidStageTransitionError",
    "StageTransitionRejectedError",

    # Calendar
    "InvalidCalendarSettingsError",
]
