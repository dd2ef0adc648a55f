"""
Due-date API routes.

Backs the date pickers and calendars: the default due date for a new
order, the next valid dates, and a single-date check.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
from datetime import date
import structlog

from models.calendar import (
    CalendarSettingsResponse,
    DueDateResponse,
    AvailableDatesResponse,
    DateAvailabilityResponse,
)
from models.order import Store
from services.due_date_service import get_due_date_service, MAX_SCAN_ATTEMPTS
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/due-dates", tags=["Due Dates"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# ROUTES
# ===================

@router.get("/{store}/settings", response_model=CalendarSettingsResponse)
async def get_calendar_settings(store: Store):
    """
    Get the store's delivery calendar.

    is_default is true when the store has none stored.
    """
    try:
        service = get_due_date_service()
        return service.describe_settings(store)

    except Exception as e:
        return handle_error(e)


@router.get("/{store}/next", response_model=DueDateResponse)
async def next_due_date(
    store: Store,
    start: Optional[date] = Query(None, description="Order date (defaults to today)")
):
    """
    Default due date for an order placed on the start date.

    available is false when the calendar had no usable day within the
    scan window and the plain lead-time date was returned.
    """
    try:
        service = get_due_date_service()
        return service.next_due_date(store, start)

    except Exception as e:
        return handle_error(e)


@router.get("/{store}/available", response_model=AvailableDatesResponse)
async def available_dates(
    store: Store,
    count: int = Query(7, ge=1, le=MAX_SCAN_ATTEMPTS, description="Dates to return"),
    start: Optional[date] = Query(None, description="First date to consider (defaults to today)")
):
    """Next valid due dates, starting at the start date itself."""
    try:
        service = get_due_date_service()
        return service.available_dates(store, count, start)

    except Exception as e:
        return handle_error(e)


@router.get("/{store}/check", response_model=DateAvailabilityResponse)
async def check_date(
    store: Store,
    day: date = Query(..., description="Date to check (YYYY-MM-DD)")
):
    """Whether one date can be used as a due date, and why not."""
    try:
        service = get_due_date_service()
        return service.check_date(store, day)

    except Exception as e:
        return handle_error(e)
