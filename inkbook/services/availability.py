# inkbook/services/availability.py
from __future__ import annotations

import calendar
import logging
from datetime import date as date_type, datetime, timedelta
from typing import Iterable, Iterator, Optional

from inkbook.core.config import get_settings
from inkbook.core.errors import DependencyError, ValidationError
from inkbook.schemas.availability import (
    DateAvailability,
    StartTimeAvailability,
    StartTimeOption,
)
from inkbook.schemas.calendar import (
    MINUTES_PER_DAY,
    ArtistProfile,
    CalendarEvent,
    EventSource,
    WallClockTime,
)
from inkbook.services.overlap import EventReader, find_overlap
from inkbook.services.recurrence import covers, expand

logger = logging.getLogger(__name__)

UNAVAILABLE_WARNING = "Availability could not be loaded. Please try again."


def month_range(year: int, month: int) -> tuple[date_type, date_type]:
    """
    First and last calendar day of the given month (1-12).
    """
    last_day = calendar.monthrange(year, month)[1]
    return date_type(year, month, 1), date_type(year, month, last_day)


def _each_day(start: date_type, end: date_type) -> Iterator[date_type]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def _blocked_dates(
    events: Iterable[CalendarEvent],
    location_id: int,
    start: date_type,
    end: date_type,
) -> set[date_type]:
    blocked: set[date_type] = set()
    for event in events:
        if event.blocks_whole_day_at(location_id):
            blocked.update(expand(event, start, end))
    return blocked


def working_window(
    artist: ArtistProfile,
    events: Iterable[CalendarEvent],
    day: date_type,
) -> Optional[tuple[int, int]]:
    """
    Opening minutes for `day`: the last temp change covering the date wins,
    otherwise the artist's regular flow applies.
    """
    hours = artist.flow
    for event in events:
        if (
            event.source is EventSource.TEMP_CHANGE
            and event.business_hours is not None
            and covers(event, day)
        ):
            hours = event.business_hours
    return hours.window_for(day)


async def available_dates(
    store: EventReader,
    artist: ArtistProfile,
    location_id: int | None,
    range_start: date_type,
    range_end: date_type | None = None,
    *,
    today: date_type | None = None,
) -> DateAvailability:
    """
    Dates in [range_start, range_end] that can take a booking at the location.

    A date is available when:
    - the location is known and open (not past its `end_at`),
    - it is not in the past,
    - it is a working day (temp changes override the regular flow),
    - no all-day event blocks it (unavailable days, book-offs, and all-day
      block-times/spot conventions not scoped to another location).

    Partially blocked dates stay available; start-time filtering happens in
    `available_start_times`. Store failures fail closed: empty dates plus a
    warning.
    """
    today = today or date_type.today()
    if range_end is None:
        range_end = today + timedelta(days=get_settings().AVAILABILITY_WINDOW_DAYS)

    result = DateAvailability(
        location_id=location_id,
        range_start=range_start,
        range_end=range_end,
    )

    location = artist.bookable_location(location_id, today)
    if location is None:
        logger.info(
            "No bookable location artist=%s location=%s; no dates available",
            artist.id,
            location_id,
        )
        return result

    first = max(range_start, today)
    last = min(range_end, location.end_at) if location.end_at else range_end
    if last < first:
        return result

    try:
        events = await store.list_events(artist.id, first, last)
    except DependencyError as exc:
        logger.warning(
            "Failed to load availability artist=%s location=%s range=%s..%s: %s",
            artist.id,
            location_id,
            first,
            last,
            exc,
        )
        return result.model_copy(update={"warning": UNAVAILABLE_WARNING})

    blocked = _blocked_dates(events, location.id, first, last)
    result.dates = [
        day
        for day in _each_day(first, last)
        if day not in blocked and working_window(artist, events, day) is not None
    ]
    return result


async def available_start_times(
    store: EventReader,
    artist: ArtistProfile,
    day: date_type,
    session_length_minutes: int,
    break_time_minutes: int | None = None,
    location_id: int | None = None,
    *,
    interval_minutes: int | None = None,
    now: datetime | None = None,
) -> StartTimeAvailability:
    """
    Start times on `day` at which a session of the given length fits.

    Candidates are generated every `interval_minutes` (aligned to the
    interval from midnight) inside the day's working window. A candidate is
    dropped when [start, start + length] plus the break buffer collides with
    any event that day. An empty list is a valid "fully booked" answer.
    """
    if session_length_minutes <= 0:
        raise ValidationError("Session length must be positive")
    interval = interval_minutes or get_settings().SLOT_INTERVAL_MINUTES
    if interval <= 0:
        raise ValidationError("Interval must be positive")
    if break_time_minutes is None:
        break_time_minutes = artist.flow.break_time

    now = now or datetime.now()
    today = now.date()

    result = StartTimeAvailability(
        date=day,
        location_id=location_id,
        session_length_minutes=session_length_minutes,
        break_time_minutes=break_time_minutes,
    )

    location = artist.bookable_location(location_id, today)
    if day < today or location is None or not location.is_open_on(day):
        return result

    try:
        events = await store.list_events(artist.id, day, day)
    except DependencyError as exc:
        logger.warning(
            "Failed to load start times artist=%s location=%s date=%s: %s",
            artist.id,
            location_id,
            day,
            exc,
        )
        return result.model_copy(update={"warning": UNAVAILABLE_WARNING})

    if any(e.blocks_whole_day_at(location.id) and covers(e, day) for e in events):
        return result

    window = working_window(artist, events, day)
    if window is None:
        return result
    open_m, close_m = window
    # Sessions never run past midnight.
    close_m = min(close_m, MINUTES_PER_DAY - 1)

    if day == today:
        open_m = max(open_m, now.hour * 60 + now.minute)

    cursor = open_m
    if cursor % interval:
        cursor += interval - cursor % interval

    options: list[StartTimeOption] = []
    while cursor + session_length_minutes <= close_m:
        conflict = find_overlap(
            events,
            day,
            cursor,
            cursor + session_length_minutes,
            break_time_minutes,
            location_id=location.id,
        )
        if conflict is None:
            options.append(StartTimeOption.at(WallClockTime(cursor)))
        cursor += interval

    result.start_times = options
    return result
