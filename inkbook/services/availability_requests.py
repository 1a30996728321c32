# inkbook/services/availability_requests.py
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from datetime import date as date_type
from typing import Optional

from inkbook.schemas.availability import DateAvailability
from inkbook.schemas.calendar import ArtistProfile
from inkbook.services.availability import available_dates, month_range
from inkbook.services.overlap import EventReader

logger = logging.getLogger(__name__)


@dataclass
class AvailabilityRequestTracker:
    """
    Hands out monotonically increasing request numbers and only lets the
    newest request publish its result.

    A superseded query keeps running (store calls are not cancelled), but
    its result is discarded instead of overwriting a newer one.
    """

    _counter: "itertools.count[int]" = field(default_factory=lambda: itertools.count(1))
    latest: int = 0

    def begin(self) -> int:
        self.latest = next(self._counter)
        return self.latest

    def is_current(self, seq: int) -> bool:
        return seq == self.latest


class MonthAvailabilityLoader:
    """
    Month-view availability for one artist, re-issued whenever the selected
    month or location changes (cancel-and-replace, never queued).
    """

    def __init__(self, store: EventReader, artist: ArtistProfile):
        self.store = store
        self.artist = artist
        self.tracker = AvailabilityRequestTracker()
        self.current: Optional[DateAvailability] = None

    async def load(
        self,
        year: int,
        month: int,
        location_id: int | None,
        *,
        today: date_type | None = None,
    ) -> Optional[DateAvailability]:
        """
        Run the query for the given month and publish it to `current`.

        Returns None when a newer request was started while this one was in
        flight; its result is dropped.
        """
        seq = self.tracker.begin()
        start, end = month_range(year, month)
        result = await available_dates(
            self.store,
            self.artist,
            location_id,
            start,
            end,
            today=today,
        )
        if not self.tracker.is_current(seq):
            logger.debug(
                "Discarding stale availability #%s for %04d-%02d (latest #%s)",
                seq,
                year,
                month,
                self.tracker.latest,
            )
            return None
        self.current = result
        return result
