# inkbook/services/recurrence.py
from __future__ import annotations

from datetime import date as date_type, timedelta
from typing import Iterator, Optional, Tuple

from inkbook.schemas.calendar import CalendarEvent

Span = Tuple[date_type, date_type]


def expand_spans(
    template: CalendarEvent,
    window_start: date_type,
    window_end: date_type,
) -> Iterator[Span]:
    """
    Yield each occurrence of `template` as an inclusive (start, end) span
    that intersects [window_start, window_end].

    Rules
    -----
    - Non-repeating templates yield their own span if it touches the window.
    - The k-th occurrence starts at anchor + k * cadence, computed from the
      anchor so a monthly rule on Jan 31 lands on Feb 28/29, Mar 31, Apr 30.
    - Occurrences must start strictly before anchor + count * unit.
    - Occurrences before the window are skipped but still consume the
      budget; generation stops once an occurrence starts after window_end.
    """
    if window_end < window_start:
        return

    length = timedelta(days=template.span_days)
    anchor = template.start_date
    rule = template.recurrence

    if rule is None:
        if anchor <= window_end and anchor + length >= window_start:
            yield anchor, anchor + length
        return

    stop = rule.terminates_at(anchor)
    index = 0
    while True:
        start = rule.occurrence_start(anchor, index)
        if start >= stop or start > window_end:
            return
        end = start + length
        if end >= window_start:
            yield start, end
        index += 1


def expand(
    template: CalendarEvent,
    window_start: date_type,
    window_end: date_type,
) -> Iterator[date_type]:
    """
    Yield every calendar date occupied by `template` inside the window, in
    ascending order. Multi-day templates contribute each day of the span.
    """
    last: Optional[date_type] = None
    for start, end in expand_spans(template, window_start, window_end):
        day = max(start, window_start)
        stop = min(end, window_end)
        while day <= stop:
            # Spans of long templates with short cadences can overlap.
            if last is None or day > last:
                yield day
                last = day
            day += timedelta(days=1)


def occurrence_on(template: CalendarEvent, day: date_type) -> Optional[date_type]:
    """
    Start date of the occurrence covering `day`, or None.
    """
    for start, _end in expand_spans(template, day, day):
        return start
    return None


def covers(template: CalendarEvent, day: date_type) -> bool:
    """
    Whether any occurrence of the template falls on `day`. Used when
    rendering calendar cells.
    """
    return occurrence_on(template, day) is not None
