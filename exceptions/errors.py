"""
Custom exception classes for the application.

Every error carries a stable code, an HTTP status and a details dict so
routes can render it without knowing the concrete type.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "ORDER_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with the current state of a resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# ORDER ERRORS
# ===================

class OrderNotFoundError(NotFoundError):
    """Order not found in the given store."""

    def __init__(self, order_id: str, store: Optional[str] = None):
        super().__init__(
            resource="Order",
            identifier=order_id,
            code="ORDER_NOT_FOUND"
        )
        if store:
            self.details["store"] = store


# ===================
# STAGE TRANSITION ERRORS
# ===================

class InvalidStageTransitionError(ConflictError):
    """Command is not legal from the order's current state."""

    def __init__(self, command: str, stage: str, reason: str):
        super().__init__(
            code="INVALID_STAGE_TRANSITION",
            message=f"Cannot run {command} on an order in {stage}",
            details={
                "command": command,
                "current_stage": stage,
                "reason": reason
            }
        )


class StageTransitionRejectedError(ConflictError):
    """The backing store refused a stage command. Re-read before retrying."""

    def __init__(self, command: str, order_id: str, reason: str):
        super().__init__(
            code="STAGE_TRANSITION_REJECTED",
            message=f"{command} was rejected for order {order_id}",
            details={
                "command": command,
                "order_id": order_id,
                "reason": reason
            }
        )


# ===================
# CALENDAR ERRORS
# ===================

class InvalidCalendarSettingsError(ValidationError):
    """Stored calendar settings for a store could not be parsed."""

    def __init__(self, store: str, errors: list):
        super().__init__(
            code="INVALID_CALENDAR_SETTINGS",
            message=f"Calendar settings for {store} are invalid",
            details={"store": store, "errors": errors}
        )
