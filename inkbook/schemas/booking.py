# inkbook/schemas/booking.py
from __future__ import annotations

import datetime as dt
from datetime import date
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from inkbook.schemas.calendar import WallClockTime


class BookingState(str, Enum):
    """
    Lifecycle of a single manual booking attempt.
    """

    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    CHECKING_CONFLICTS = "CHECKING_CONFLICTS"
    RESOLVING_CLIENT = "RESOLVING_CLIENT"
    PERSISTING = "PERSISTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class BookingErrorKind(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    DEPENDENCY = "dependency"
    NOT_FOUND = "not_found"


class ClientContact(BaseModel):
    full_name: str = Field("", examples=["Jane Doe"])
    email: str = Field("", examples=["jane@example.com"])
    phone_number: str = Field("", examples=["+1 555 0100"])


class BookingForm(BaseModel):
    """
    Manual / quote booking as submitted from the booking screen.

    Either `dates` + `start_times` (multi-date) or the single-date
    `date` + `start_time` pair may be given; the latter is folded into the
    former on validation.
    """

    artist_id: int | None = Field(None, description="Defaults to the artist in the URL.")
    client_id: int | None = Field(
        None,
        description="Existing client; when absent `client` is used to find or create one.",
    )
    client: ClientContact | None = None
    title: str = Field("", examples=["Koi sleeve"])
    session_length_minutes: int = Field(0, examples=[180])
    location_id: int | None = None
    dates: list[dt.date] = Field(default_factory=list)
    start_times: dict[dt.date, WallClockTime] = Field(default_factory=dict)
    date: dt.date | None = Field(None, description="Single-date variant.")
    start_time: WallClockTime | None = Field(None, description="Single-date variant.")
    deposit_amount: float = Field(0.0, ge=0)
    session_rate: float = Field(0.0, ge=0)
    notes: str | None = None

    @model_validator(mode="after")
    def _fold_single_date(self) -> "BookingForm":
        if self.date is not None:
            if self.date not in self.dates:
                self.dates = [*self.dates, self.date]
            if self.start_time is not None and self.date not in self.start_times:
                self.start_times = {**self.start_times, self.date: self.start_time}
        return self


class BookingResult(BaseModel):
    success: bool
    state: BookingState
    project_id: int | None = None
    client_id: int | None = None
    session_ids: list[int] = Field(default_factory=list)
    error: str | None = None
    error_kind: BookingErrorKind | None = None
    conflict_date: date | None = None
    conflicting_event_title: str | None = None


class BookedSession(BaseModel):
    """
    Summary of a persisted session, used for notifications.
    """

    session_id: int
    date: dt.date
    start_time: WallClockTime
    end_time: WallClockTime


class BookingNotice(BaseModel):
    """
    Payload handed to the notifier after a successful booking.
    """

    artist_name: str | None = None
    client_name: str
    client_email: str
    title: str
    location_name: str | None = None
    sessions: list[BookedSession]
    deposit_amount: float
    session_rate: float
    notes: str | None = None


class SessionUpdate(BaseModel):
    """
    Changes to an existing session. Omitted fields keep their value.
    """

    date: dt.date | None = None
    start_time: WallClockTime | None = None
    session_length_minutes: int | None = Field(None, gt=0)
    location_id: int | None = None
    session_rate: float | None = Field(None, ge=0)
    notes: str | None = None


class RescheduleResult(BaseModel):
    success: bool
    session_id: int
    overlap_checked: bool = False
    error: str | None = None
    error_kind: BookingErrorKind | None = None
    conflicting_event_title: str | None = None
