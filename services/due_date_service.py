"""
Due-date availability engine.

Pure functions over a CalendarSettings value, plus DueDateService which
loads a store's calendar from the settings table and delegates to them.

All date scans are bounded by MAX_SCAN_ATTEMPTS so a calendar with no
usable day (every weekday off, long blackout run) still returns.
"""

from typing import Optional, Union
from datetime import date, datetime, timedelta
import json
import re
import structlog
from pydantic import ValidationError as PydanticValidationError

from config import get_supabase_client
from models.calendar import (
    WEEKDAY_NAMES,
    CalendarSettings,
    CalendarSettingsResponse,
    DueDateResponse,
    AvailableDatesResponse,
    DateAvailabilityResponse,
)
from models.order import Store
from utils.date_utils import to_calendar_date
from exceptions import DatabaseError, InvalidCalendarSettingsError

logger = structlog.get_logger(__name__)

MAX_SCAN_ATTEMPTS = 30

LEAD_TIME_PATTERN = re.compile(r"\+(\d+)\s*day", re.IGNORECASE)


# ===================
# LEAD TIME
# ===================

def parse_lead_time(expression: Optional[str]) -> int:
    """
    Days added by a lead-time expression.

    - "today" → 0
    - "+1 day", "+3 days" → 1, 3
    - anything else → 0
    """
    if not expression:
        return 0

    text = expression.strip().lower()
    if text == "today":
        return 0

    match = LEAD_TIME_PATTERN.search(text)
    if match:
        return int(match.group(1))
    return 0


# ===================
# ENGINE
# ===================

def _shift(day: date, days: int) -> Optional[date]:
    """day + days, or None past the ends of the calendar."""
    try:
        return day + timedelta(days=days)
    except OverflowError:
        return None


def is_date_available(day: Union[date, datetime], settings: CalendarSettings) -> bool:
    """
    Check if a date can be used as a due date.

    True when its weekday is allowed and it is not a blackout date.
    """
    day = to_calendar_date(day)
    # date.weekday() is Monday=0..Sunday=6, the settings vector order
    if not settings.allowed_weekdays[day.weekday()]:
        return False
    return day not in settings.blackout_dates


def calculate_due_date(
    settings: CalendarSettings,
    start_date: Union[date, datetime, None] = None,
) -> date:
    """
    Compute the default due date for an order placed on start_date.

    Adds the store's lead time, then walks forward to the first available
    date. If none turns up within MAX_SCAN_ATTEMPTS days, the lead-time
    date is returned unchanged. A lead time reaching past date.max is
    clamped to date.max; the scan stops at the end of the calendar.

    Args:
        settings: Store calendar
        start_date: Order date (defaults to today)

    Returns:
        Due date
    """
    start = to_calendar_date(start_date) or date.today()
    candidate = _shift(start, parse_lead_time(settings.default_lead_time)) or date.max

    current = candidate
    attempts = 0
    while current is not None and attempts < MAX_SCAN_ATTEMPTS:
        if is_date_available(current, settings):
            return current
        current = _shift(current, 1)
        attempts += 1

    return candidate


def get_next_available_dates(
    settings: CalendarSettings,
    count: int = 7,
    start_date: Union[date, datetime, None] = None,
) -> list[date]:
    """
    List the next available dates, starting at start_date itself.

    The lead time is not applied. Stops after count dates,
    MAX_SCAN_ATTEMPTS days or date.max, whichever comes first.

    Returns:
        Strictly increasing list of at most count dates
    """
    current = to_calendar_date(start_date) or date.today()
    available: list[date] = []
    attempts = 0

    while current is not None and len(available) < count and attempts < MAX_SCAN_ATTEMPTS:
        if is_date_available(current, settings):
            available.append(current)
        current = _shift(current, 1)
        attempts += 1

    return available


def format_due_date(day: Union[date, datetime]) -> str:
    """Format for display, e.g. "Tue, Dec 24, 2024"."""
    day = to_calendar_date(day)
    return f"{day.strftime('%a, %b')} {day.day}, {day.year}"


# ===================
# SERVICE
# ===================

class DueDateService:
    """
    Due-date calculations for a store.

    Loads the store's calendar from the settings table on every call, so
    edits made elsewhere apply to the next request.
    """

    SETTINGS_KEY = "dueDates"

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "settings"

    def _load_document(self, store: Store) -> Optional[dict]:
        """Fetch the raw calendar document, or None if the store has none."""
        try:
            result = (
                self.db.table(self.table)
                .select("value")
                .eq("store", store.value)
                .eq("key", self.SETTINGS_KEY)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("calendar_settings_get_failed", store=store.value, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            return None

        value = result.data[0].get("value")
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError as e:
                raise InvalidCalendarSettingsError(store.value, [str(e)])
        return value

    def get_calendar_settings(self, store: Store) -> tuple[CalendarSettings, bool]:
        """
        Get a store's calendar.

        Returns:
            (settings, is_default). is_default is True when the store has no
            stored calendar and the fallback calendar is used.

        Raises:
            InvalidCalendarSettingsError: Stored document does not validate
            DatabaseError: Settings table could not be read
        """
        document = self._load_document(store)

        if document is None:
            logger.warning("calendar_settings_missing", store=store.value)
            return CalendarSettings.default(), True

        try:
            settings = CalendarSettings.model_validate(document)
        except PydanticValidationError as e:
            logger.error("calendar_settings_invalid", store=store.value, errors=e.error_count())
            raise InvalidCalendarSettingsError(
                store.value,
                [err["msg"] for err in e.errors()]
            )

        return settings, False

    def describe_settings(self, store: Store) -> CalendarSettingsResponse:
        """Calendar settings in display form."""
        settings, is_default = self.get_calendar_settings(store)
        return CalendarSettingsResponse(
            store=store.value,
            default_lead_time=settings.default_lead_time,
            allowed_weekdays=list(settings.allowed_weekdays),
            allowed_weekday_names=[
                name
                for name, allowed in zip(WEEKDAY_NAMES, settings.allowed_weekdays)
                if allowed
            ],
            blackout_dates=sorted(settings.blackout_dates),
            is_default=is_default,
        )

    def next_due_date(self, store: Store, start_date: Optional[date] = None) -> DueDateResponse:
        """Default due date for an order placed on start_date."""
        settings, _ = self.get_calendar_settings(store)
        start = start_date or date.today()
        due = calculate_due_date(settings, start)
        available = is_date_available(due, settings)

        if not available:
            logger.warning(
                "due_date_scan_exhausted",
                store=store.value,
                start_date=start.isoformat(),
                attempts=MAX_SCAN_ATTEMPTS
            )

        return DueDateResponse(
            store=store.value,
            start_date=start,
            due_date=due,
            display=format_due_date(due),
            available=available,
        )

    def available_dates(
        self,
        store: Store,
        count: int = 7,
        start_date: Optional[date] = None
    ) -> AvailableDatesResponse:
        """Next valid due dates for a date picker."""
        settings, _ = self.get_calendar_settings(store)
        start = start_date or date.today()
        dates = get_next_available_dates(settings, count, start)

        logger.debug(
            "available_dates_computed",
            store=store.value,
            requested=count,
            found=len(dates)
        )

        return AvailableDatesResponse(
            store=store.value,
            start_date=start,
            requested=count,
            dates=dates,
        )

    def check_date(self, store: Store, day: date) -> DateAvailabilityResponse:
        """Explain whether one date is usable."""
        settings, _ = self.get_calendar_settings(store)
        return DateAvailabilityResponse(
            store=store.value,
            day=day,
            available=is_date_available(day, settings),
            weekday=WEEKDAY_NAMES[day.weekday()],
            blacked_out=day in settings.blackout_dates,
        )


# Singleton instance
_due_date_service: Optional[DueDateService] = None


def get_due_date_service() -> DueDateService:
    """Get or create DueDateService instance."""
    global _due_date_service
    if _due_date_service is None:
        _due_date_service = DueDateService()
    return _due_date_service
