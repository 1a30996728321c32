# inkbook/schemas/calendar.py
from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Any

from dateutil.relativedelta import relativedelta
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    GetCoreSchemaHandler,
    GetJsonSchemaHandler,
    model_validator,
)
from pydantic_core import core_schema

from inkbook.core.errors import InvalidRecurrence

MINUTES_PER_DAY = 24 * 60

# Indexed by date.weekday()
WEEKDAY_CODES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_DISPLAY_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)


def weekday_code(day: date) -> str:
    return WEEKDAY_CODES[day.weekday()]


# --------------------------------------------------------------------------
# Wall-clock time value type
# --------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class WallClockTime:
    """
    Minute-precision time of day with no timezone attached.

    Calendar data is stored as local "HH:MM" strings; this type keeps that
    meaning explicit instead of borrowing a timestamp type that implies an
    offset.
    """

    minutes: int

    def __post_init__(self) -> None:
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise ValueError(f"time of day out of range: {self.minutes} minutes")

    @classmethod
    def of(cls, hour: int, minute: int = 0) -> "WallClockTime":
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"invalid time of day {hour}:{minute}")
        return cls(hour * 60 + minute)

    @classmethod
    def parse(cls, value: Any) -> "WallClockTime":
        """
        Accepts "HH:MM", "HH:MM:SS", "h:mm AM/PM", datetime.time or an
        existing WallClockTime.
        """
        if isinstance(value, WallClockTime):
            return value
        if isinstance(value, time):
            if value.tzinfo is not None:
                raise ValueError("wall-clock times carry no timezone")
            return cls.of(value.hour, value.minute)
        if not isinstance(value, str):
            raise ValueError(f"cannot parse time of day from {value!r}")

        text = value.strip()
        match = _HHMM_RE.match(text)
        if match:
            return cls.of(int(match.group(1)), int(match.group(2)))

        match = _DISPLAY_RE.match(text)
        if match:
            hour = int(match.group(1))
            if not 1 <= hour <= 12:
                raise ValueError(f"invalid 12-hour time {value!r}")
            hour = hour % 12
            if match.group(3).upper() == "PM":
                hour += 12
            return cls.of(hour, int(match.group(2)))

        raise ValueError(f"cannot parse time of day from {value!r}")

    @property
    def hour(self) -> int:
        return self.minutes // 60

    @property
    def minute(self) -> int:
        return self.minutes % 60

    def plus_minutes(self, delta: int) -> "WallClockTime":
        """
        Shift forward within the same day. Ranges never span midnight, so
        a result past 23:59 is rejected.
        """
        return WallClockTime(self.minutes + delta)

    def to_time(self) -> time:
        return time(self.hour, self.minute)

    @property
    def label(self) -> str:
        """12-hour display form, e.g. '1:30 PM'."""
        period = "AM" if self.hour < 12 else "PM"
        hour12 = (self.hour + 11) % 12 + 1
        return f"{hour12}:{self.minute:02d} {period}"

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.to_string_ser_schema(),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, _schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> dict[str, Any]:
        return {"type": "string", "pattern": r"^\d{2}:\d{2}$", "examples": ["10:30"]}


class TimeRange(BaseModel):
    """
    A single-day wall-clock range. Ranges never span midnight.
    """

    model_config = ConfigDict(frozen=True)

    date: dt.date = Field(..., description="Calendar date of the range.", examples=["2025-03-10"])
    start_time: WallClockTime = Field(..., description="Inclusive start (HH:MM).")
    end_time: WallClockTime = Field(..., description="Exclusive end (HH:MM).")

    @model_validator(mode="after")
    def _start_before_end(self) -> "TimeRange":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self

    @classmethod
    def for_session(cls, day: date, start: WallClockTime, length_minutes: int) -> "TimeRange":
        if length_minutes <= 0:
            raise ValueError("session length must be positive")
        if start.minutes + length_minutes >= MINUTES_PER_DAY:
            raise ValueError("session would run past midnight")
        return cls(date=day, start_time=start, end_time=start.plus_minutes(length_minutes))


# --------------------------------------------------------------------------
# Recurrence
# --------------------------------------------------------------------------


class RecurrenceCadence(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DurationUnit(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


_CADENCE_UNIT = {
    RecurrenceCadence.DAILY: DurationUnit.DAYS,
    RecurrenceCadence.WEEKLY: DurationUnit.WEEKS,
    RecurrenceCadence.MONTHLY: DurationUnit.MONTHS,
    RecurrenceCadence.YEARLY: DurationUnit.YEARS,
}

_UNIT_RANK = {
    DurationUnit.DAYS: 0,
    DurationUnit.WEEKS: 1,
    DurationUnit.MONTHS: 2,
    DurationUnit.YEARS: 3,
}


class RecurrenceRule(BaseModel):
    """
    Repetition of a calendar event template.

    `cadence` is the step between occurrences; `count` + `unit` is the
    termination condition measured from the anchor date. The two are kept
    apart because unavailable-day records pick their unit independently of
    the cadence (e.g. weekly for 3 months).
    """

    model_config = ConfigDict(frozen=True)

    cadence: RecurrenceCadence
    count: int = Field(..., gt=0, description="Number of `unit`s the rule runs for.")
    unit: DurationUnit

    @model_validator(mode="after")
    def _unit_not_finer_than_cadence(self) -> "RecurrenceRule":
        if _UNIT_RANK[self.unit] < _UNIT_RANK[_CADENCE_UNIT[self.cadence]]:
            raise InvalidRecurrence(
                f"a {self.cadence.value} rule cannot be bounded in {self.unit.value}"
            )
        return self

    @classmethod
    def from_fields(
        cls,
        is_repeat: bool,
        repeat_type: str | None,
        repeat_duration: int | None,
        repeat_duration_unit: str | None,
    ) -> "RecurrenceRule | None":
        """
        Build a rule from the flat columns stored on event rows.

        Returns None for non-repeating records (flag off, or a duration of
        0/absent). A repeat flag without a cadence is a data-integrity bug.
        """
        if not is_repeat:
            return None
        if not repeat_type:
            raise InvalidRecurrence("record is marked repeating but has no repeat type")
        try:
            cadence = RecurrenceCadence(repeat_type)
        except ValueError:
            raise InvalidRecurrence(f"unknown repeat type {repeat_type!r}") from None

        if not repeat_duration:
            return None
        if repeat_duration < 0:
            raise InvalidRecurrence(f"negative repeat duration {repeat_duration}")

        if repeat_duration_unit:
            try:
                unit = DurationUnit(repeat_duration_unit)
            except ValueError:
                raise InvalidRecurrence(
                    f"unknown repeat duration unit {repeat_duration_unit!r}"
                ) from None
        else:
            unit = _CADENCE_UNIT[cadence]

        return cls(cadence=cadence, count=repeat_duration, unit=unit)

    def occurrence_start(self, anchor: date, index: int) -> date:
        """
        Start date of the `index`-th occurrence, computed from the anchor so
        month/year steps clamp to the last valid day without drifting.
        """
        step_unit = _CADENCE_UNIT[self.cadence].value
        return anchor + relativedelta(**{step_unit: index})

    def terminates_at(self, anchor: date) -> date:
        """Exclusive bound: occurrences must start strictly before this date."""
        return anchor + relativedelta(**{self.unit.value: self.count})


# --------------------------------------------------------------------------
# Business hours / artist profile
# --------------------------------------------------------------------------


class DayHours(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_time: WallClockTime
    end_time: WallClockTime

    @model_validator(mode="after")
    def _start_before_end(self) -> "DayHours":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class BusinessHours(BaseModel):
    """
    Working days and per-weekday opening hours.

    An empty `work_days` list means hours are open-ended: every day is a
    working day from 00:00 to midnight.
    """

    work_days: list[str] = Field(
        default_factory=list,
        description="Weekday codes (mon..sun) the artist works on.",
        examples=[["tue", "wed", "thu", "fri", "sat"]],
    )
    start_times: dict[str, WallClockTime] = Field(default_factory=dict)
    end_times: dict[str, WallClockTime] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _known_weekdays(self) -> "BusinessHours":
        unknown = [d for d in self.work_days if d not in WEEKDAY_CODES]
        if unknown:
            raise ValueError(f"unknown weekday codes: {unknown}")
        return self

    def is_work_day(self, day: date) -> bool:
        if not self.work_days:
            return True
        return weekday_code(day) in self.work_days

    def window_for(self, day: date) -> tuple[int, int] | None:
        """
        Open/close minutes for the day, or None when closed.
        Missing start/end times fall back to the start/end of the day.
        """
        if not self.is_work_day(day):
            return None
        code = weekday_code(day)
        start = self.start_times.get(code)
        end = self.end_times.get(code)
        open_m = start.minutes if start is not None else 0
        close_m = end.minutes if end is not None else MINUTES_PER_DAY
        if close_m <= open_m:
            return None
        return open_m, close_m


class ArtistFlow(BusinessHours):
    break_time: int = Field(
        default=0,
        ge=0,
        description="Mandatory buffer in minutes between any two occupied ranges.",
    )


class ArtistLocation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str = ""
    address: str | None = None
    is_main_studio: bool = False
    end_at: date | None = Field(
        None,
        description="Last day a temporary location can be booked.",
    )

    def is_open_on(self, day: date) -> bool:
        return self.end_at is None or day <= self.end_at


class ArtistProfile(BaseModel):
    """
    Scheduling-relevant slice of the artist record, already loaded by the
    auth collaborator.
    """

    id: int
    full_name: str | None = None
    email: str | None = None
    flow: ArtistFlow = Field(default_factory=ArtistFlow)
    locations: list[ArtistLocation] = Field(default_factory=list)

    def bookable_location(self, location_id: int | None, today: date) -> ArtistLocation | None:
        """
        The location with this id, unless it is unknown or already expired.
        """
        if location_id is None:
            return None
        for loc in self.locations:
            if loc.id == location_id:
                return loc if loc.is_open_on(today) else None
        return None


# --------------------------------------------------------------------------
# Calendar events
# --------------------------------------------------------------------------


class EventSource(str, Enum):
    SESSION = "session"
    BLOCK_TIME = "block_time"
    MARK_UNAVAILABLE = "mark_unavailable"
    SPOT_CONVENTION = "spot_convention"
    QUICK_APPOINTMENT = "quick_appointment"
    BOOK_OFF = "book_off"
    TEMP_CHANGE = "temp_change"


# Whole-day closures that block the artist everywhere.
ALWAYS_ALL_DAY = frozenset({EventSource.MARK_UNAVAILABLE, EventSource.BOOK_OFF})

# Only these may block a whole date when they carry no times.
LOCATION_SCOPED_ALL_DAY = frozenset({EventSource.BLOCK_TIME, EventSource.SPOT_CONVENTION})


class CalendarEvent(BaseModel):
    """
    Anything that occupies (or reshapes) time on an artist's calendar.

    Events with a recurrence rule are templates; their occurrences are
    derived by the recurrence expander and never stored.
    """

    id: int
    artist_id: int
    title: str = ""
    source: EventSource
    start_date: date
    end_date: date | None = Field(
        None,
        description="Inclusive last date; defaults to start_date.",
    )
    start_time: WallClockTime | None = None
    end_time: WallClockTime | None = None
    daily_hours: dict[date, DayHours] | None = Field(
        None,
        description="Per-date hours for multi-day events, keyed by template date.",
    )
    location_id: int | None = None
    recurrence: RecurrenceRule | None = None
    business_hours: BusinessHours | None = Field(
        None,
        description="Working hours that apply during a temp_change.",
    )

    @model_validator(mode="after")
    def _check_shape(self) -> "CalendarEvent":
        if self.end_date is None:
            self.end_date = self.start_date
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be given together")
        if self.start_time is not None and self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self

    @property
    def span_days(self) -> int:
        return (self.end_date - self.start_date).days

    @property
    def occupies_time(self) -> bool:
        return self.source is not EventSource.TEMP_CHANGE

    @property
    def is_all_day(self) -> bool:
        if self.source in ALWAYS_ALL_DAY:
            return True
        return self.start_time is None and not self.daily_hours

    def occupied_minutes(
        self,
        day: date,
        occurrence_start: date,
        location_id: int | None = None,
    ) -> tuple[int, int] | None:
        """
        Minutes [start, end) occupied on `day`, which falls inside the
        occurrence starting on `occurrence_start`.

        An all-day block-time or spot convention scoped to another location
        occupies nothing when `location_id` is given; it matches
        `blocks_whole_day_at`.
        """
        if not self.occupies_time:
            return None
        if self.source in ALWAYS_ALL_DAY:
            return 0, MINUTES_PER_DAY
        if (
            location_id is not None
            and self.source in LOCATION_SCOPED_ALL_DAY
            and self.is_all_day
            and not self.blocks_whole_day_at(location_id)
        ):
            return None
        if self.daily_hours:
            template_day = self.start_date + (day - occurrence_start)
            hours = self.daily_hours.get(template_day)
            if hours is not None:
                return hours.start_time.minutes, hours.end_time.minutes
        if self.start_time is not None:
            return self.start_time.minutes, self.end_time.minutes
        return 0, MINUTES_PER_DAY

    def blocks_whole_day_at(self, location_id: int | None) -> bool:
        """
        True if, on a date it covers, this event makes the whole date
        unbookable at the given location.
        """
        if self.source in ALWAYS_ALL_DAY:
            return True
        if self.source not in LOCATION_SCOPED_ALL_DAY or not self.is_all_day:
            return False
        return self.location_id is None or self.location_id == location_id
