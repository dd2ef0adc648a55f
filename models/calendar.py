"""
Per-store delivery calendar.

Persisted as a small JSON document in the settings table:
    {"defaultLeadTime": "+1 day",
     "allowedWeekdays": [true, true, true, true, true, true, false],
     "blackoutDates": ["2024-12-25"]}

The settings page historically wrote "defaultDue"/"allowedDays"; both
spellings are accepted. Blackout entries that are not dates are ignored;
only the weekday vector is strictly validated.
"""

from pydantic import AliasChoices, ConfigDict, Field, field_validator
from datetime import date
import structlog

from models.base import BaseSchema
from utils.date_utils import to_calendar_date

logger = structlog.get_logger(__name__)

# Monday=0 .. Sunday=6, same indexing as date.weekday()
WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


class CalendarSettings(BaseSchema):
    """
    Due-date constraints for one store.

    Immutable once built; pass a new value to change the calendar.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    default_lead_time: str = Field(
        default="+1 day",
        validation_alias=AliasChoices("default_lead_time", "defaultLeadTime", "defaultDue"),
        serialization_alias="defaultLeadTime",
        description='"today" or "+N day(s)"'
    )
    allowed_weekdays: tuple[bool, ...] = Field(
        default=(True, True, True, True, True, True, False),
        validation_alias=AliasChoices("allowed_weekdays", "allowedWeekdays", "allowedDays"),
        serialization_alias="allowedWeekdays",
        description="Seven flags, Monday first"
    )
    blackout_dates: frozenset[date] = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices("blackout_dates", "blackoutDates"),
        serialization_alias="blackoutDates",
        description="Dates never usable as a due date (YYYY-MM-DD)"
    )

    @field_validator("allowed_weekdays")
    @classmethod
    def exactly_seven_days(cls, v: tuple[bool, ...]) -> tuple[bool, ...]:
        """One flag per weekday, no more, no less."""
        if len(v) != 7:
            raise ValueError(f"allowed_weekdays must have 7 entries, got {len(v)}")
        return v

    @field_validator("blackout_dates", mode="before")
    @classmethod
    def readable_blackouts_only(cls, v):
        """Unreadable blackout entries never match any date; drop them."""
        if v is None:
            return frozenset()
        if isinstance(v, (str, dict)) or not hasattr(v, "__iter__"):
            logger.warning("calendar_blackout_ignored", value=str(v))
            return frozenset()

        days = set()
        for entry in v:
            day = to_calendar_date(entry)
            if day is None:
                logger.warning("calendar_blackout_ignored", value=str(entry))
                continue
            days.add(day)
        return frozenset(days)

    @field_validator("default_lead_time", mode="before")
    @classmethod
    def lead_time_as_text(cls, v):
        """Missing lead time reads as "today"."""
        if v is None:
            return "today"
        return str(v)

    @classmethod
    def default(cls) -> "CalendarSettings":
        """Fallback calendar: next day, Monday to Saturday, no blackouts."""
        return cls()

    def to_document(self) -> dict:
        """Render as the JSON document stored in the settings table."""
        return {
            "defaultLeadTime": self.default_lead_time,
            "allowedWeekdays": list(self.allowed_weekdays),
            "blackoutDates": sorted(d.isoformat() for d in self.blackout_dates),
        }


class CalendarSettingsResponse(BaseSchema):
    """Calendar settings for a store, as served to date pickers."""

    store: str
    default_lead_time: str
    allowed_weekdays: list[bool]
    allowed_weekday_names: list[str]
    blackout_dates: list[date]
    is_default: bool = Field(
        default=False,
        description="True when the store has no stored calendar and the fallback is used"
    )


class DueDateResponse(BaseSchema):
    """A single computed due date."""

    store: str
    start_date: date
    due_date: date
    display: str
    available: bool = Field(
        ...,
        description="False when no allowed date was found and the unconstrained date was returned"
    )


class AvailableDatesResponse(BaseSchema):
    """The next valid due dates from a start date."""

    store: str
    start_date: date
    requested: int
    dates: list[date]


class DateAvailabilityResponse(BaseSchema):
    """Whether one date can be used as a due date."""

    store: str
    day: date
    available: bool
    weekday: str
    blacked_out: bool
