# inkbook/core/errors.py
from __future__ import annotations

from datetime import date as date_type


class SchedulingError(Exception):
    """
    Base class for every error raised by the scheduling engine.
    """


class ValidationError(SchedulingError):
    """
    A required booking field is missing or malformed.

    Raised before anything is sent to the store.
    """


class ConflictError(SchedulingError):
    """
    A proposed time range collides with an event already on the calendar.
    """

    def __init__(
        self,
        message: str,
        *,
        conflict_date: date_type | None = None,
        event_title: str | None = None,
    ) -> None:
        super().__init__(message)
        self.conflict_date = conflict_date
        self.event_title = event_title


class DependencyError(SchedulingError):
    """
    The store (or another collaborator) failed.

    Callers must fail closed: treat the outcome as unknown and never write.
    """


class InvalidRecurrence(SchedulingError):
    """
    A recurrence rule is malformed (e.g. repeat flag set without a cadence).

    This is a data-integrity bug and is never silently patched.
    """


class NotFoundError(ValidationError):
    """
    The record referenced by id does not exist for this artist.
    """
