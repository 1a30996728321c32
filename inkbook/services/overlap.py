# inkbook/services/overlap.py
from __future__ import annotations

import logging
from datetime import date as date_type
from typing import Iterable, Optional, Protocol

from inkbook.core.errors import DependencyError, ValidationError
from inkbook.schemas.availability import OverlapCheck
from inkbook.schemas.calendar import CalendarEvent, EventSource, WallClockTime
from inkbook.services.recurrence import occurrence_on

logger = logging.getLogger(__name__)

# Caller source names that refer to committed sessions.
_SESSION_SOURCES = {"manual", "session", "quote", "auto"}


class EventReader(Protocol):
    async def list_events(
        self, artist_id: int, start: date_type, end: date_type
    ) -> list[CalendarEvent]:
        ...


def _is_self(event: CalendarEvent, source: str | None, exclude_id: int | None) -> bool:
    if exclude_id is None or event.id != exclude_id:
        return False
    if source in _SESSION_SOURCES:
        return event.source is EventSource.SESSION
    return event.source.value == source


def find_overlap(
    events: Iterable[CalendarEvent],
    day: date_type,
    start_minutes: int,
    end_minutes: int,
    break_time_minutes: int = 0,
    *,
    source: str | None = None,
    exclude_id: int | None = None,
    location_id: int | None = None,
) -> Optional[CalendarEvent]:
    """
    Return the first event that collides with [start, end) on `day`.

    The break buffer is symmetric: an existing range [s, e) effectively
    occupies [s - break, e + break), so a candidate starting within `break`
    minutes after an event ends (or ending within `break` minutes before one
    starts) conflicts. Events are scanned in the order given; the first hit
    wins. Recurring templates are materialised for `day` only. With a
    `location_id`, all-day blocks scoped to other locations are ignored.
    """
    buffer = max(break_time_minutes, 0)
    for event in events:
        if _is_self(event, source, exclude_id):
            continue
        occurrence_start = occurrence_on(event, day)
        if occurrence_start is None:
            continue
        occupied = event.occupied_minutes(day, occurrence_start, location_id)
        if occupied is None:
            continue
        busy_start, busy_end = occupied
        if start_minutes < busy_end + buffer and end_minutes > busy_start - buffer:
            return event
    return None


async def check_overlap(
    store: EventReader,
    artist_id: int,
    day: date_type,
    start_time: WallClockTime,
    end_time: WallClockTime,
    break_time_minutes: int = 0,
    source: str | None = "manual",
    exclude_id: int | None = None,
    location_id: int | None = None,
) -> OverlapCheck:
    """
    Check a proposed range against everything on the artist's calendar for
    that date.

    Store failures come back as `OverlapCheck(has_overlap=False, error=...)`;
    callers must treat that as "unknown" and block the write.
    """
    if start_time >= end_time:
        raise ValidationError("start time must be before end time")

    try:
        events = await store.list_events(artist_id, day, day)
    except DependencyError as exc:
        logger.warning(
            "Overlap check failed for artist=%s date=%s %s-%s: %s",
            artist_id,
            day,
            start_time,
            end_time,
            exc,
        )
        return OverlapCheck(has_overlap=False, error=str(exc) or "Failed to check for conflicts")

    conflict = find_overlap(
        events,
        day,
        start_time.minutes,
        end_time.minutes,
        break_time_minutes,
        source=source,
        exclude_id=exclude_id,
        location_id=location_id,
    )
    if conflict is not None:
        logger.info(
            "Overlap for artist=%s on %s %s-%s with %s #%s (%r)",
            artist_id,
            day,
            start_time,
            end_time,
            conflict.source.value,
            conflict.id,
            conflict.title,
        )
        return OverlapCheck(has_overlap=True, overlapping_event=conflict)
    return OverlapCheck(has_overlap=False)
