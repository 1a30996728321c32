# inkbook/schemas/availability.py
from __future__ import annotations

import datetime as dt
from datetime import date

from pydantic import BaseModel, Field, model_validator

from inkbook.schemas.calendar import CalendarEvent, WallClockTime


class StartTimeOption(BaseModel):
    """
    A bookable start time rendered as a chip on the booking screen.
    """

    value: WallClockTime = Field(..., description="24-hour start time.", examples=["13:30"])
    label: str = Field(..., description="12-hour display label.", examples=["1:30 PM"])

    @classmethod
    def at(cls, start: WallClockTime) -> "StartTimeOption":
        return cls(value=start, label=start.label)


class DateAvailability(BaseModel):
    """
    Bookable dates for a month (or any range) at one location.

    An empty `dates` list with `warning` set means the store could not be
    read; callers must render it as "no availability", never as a partial set.
    """

    location_id: int | None = None
    range_start: date
    range_end: date
    dates: list[date] = Field(default_factory=list)
    warning: str | None = Field(
        None,
        description="Set when the lookup failed closed.",
    )


class StartTimeAvailability(BaseModel):
    """
    Bookable start times on a single date, in ascending order.
    """

    date: dt.date
    location_id: int | None = None
    session_length_minutes: int
    break_time_minutes: int
    start_times: list[StartTimeOption] = Field(default_factory=list)
    warning: str | None = None


class OverlapCheck(BaseModel):
    """
    Outcome of the overlap detector.

    A populated `error` means conflict status is unknown; callers must block
    the write rather than treat it as "no conflict".
    """

    has_overlap: bool = False
    overlapping_event: CalendarEvent | None = None
    error: str | None = None

    @property
    def is_safe(self) -> bool:
        return not self.has_overlap and self.error is None


class OverlapCheckRequest(BaseModel):
    date: dt.date
    start_time: WallClockTime
    end_time: WallClockTime
    break_time_minutes: int | None = Field(
        None,
        ge=0,
        description="Defaults to the artist's configured break time.",
    )
    source: str = Field("manual", description="Kind of event being checked.")
    exclude_id: int | None = Field(
        None,
        description="Id of the event being edited, excluded from its own check.",
    )
    location_id: int | None = Field(
        None,
        description="Location being booked; all-day blocks at other locations are ignored.",
    )

    @model_validator(mode="after")
    def _start_before_end(self) -> "OverlapCheckRequest":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self
