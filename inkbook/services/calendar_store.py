# inkbook/services/calendar_store.py
from __future__ import annotations

import logging
from datetime import date as date_type
from typing import Any, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inkbook.core.errors import DependencyError, InvalidRecurrence
from inkbook.models.artist import Artist
from inkbook.models.booking import Project, SessionRecord
from inkbook.models.calendar_event import CalendarEventRecord
from inkbook.models.client import Client
from inkbook.schemas.calendar import (
    ArtistFlow,
    ArtistLocation,
    ArtistProfile,
    BusinessHours,
    CalendarEvent,
    DayHours,
    EventSource,
    RecurrenceRule,
    TimeRange,
    WallClockTime,
)

logger = logging.getLogger(__name__)


def session_to_event(record: SessionRecord, project: Project) -> CalendarEvent:
    start = WallClockTime.parse(record.start_time)
    rng = TimeRange.for_session(record.date, start, record.duration)
    return CalendarEvent(
        id=record.id,
        artist_id=project.artist_id,
        title=project.title or "Session",
        source=EventSource.SESSION,
        start_date=record.date,
        start_time=rng.start_time,
        end_time=rng.end_time,
        location_id=record.location_id,
    )


def record_to_event(record: CalendarEventRecord) -> CalendarEvent:
    """
    Map a stored event row into the domain model.

    Raises InvalidRecurrence when the repeat columns are inconsistent.
    """
    try:
        rule = RecurrenceRule.from_fields(
            bool(record.is_repeat),
            record.repeat_type,
            record.repeat_duration,
            record.repeat_duration_unit,
        )
    except InvalidRecurrence:
        logger.error(
            "Invalid recurrence on event id=%s artist_id=%s (type=%r duration=%r unit=%r)",
            record.id,
            record.artist_id,
            record.repeat_type,
            record.repeat_duration,
            record.repeat_duration_unit,
        )
        raise

    daily_hours = None
    if record.daily_hours:
        daily_hours = {
            date_type.fromisoformat(key): DayHours.model_validate(value)
            for key, value in record.daily_hours.items()
        }

    business_hours = None
    if record.business_hours:
        business_hours = BusinessHours.model_validate(record.business_hours)

    return CalendarEvent(
        id=record.id,
        artist_id=record.artist_id,
        title=record.title or "",
        source=EventSource(record.source),
        start_date=record.start_date,
        end_date=record.end_date,
        start_time=WallClockTime.parse(record.start_time) if record.start_time else None,
        end_time=WallClockTime.parse(record.end_time) if record.end_time else None,
        daily_hours=daily_hours,
        location_id=record.location_id,
        recurrence=rule,
        business_hours=business_hours,
    )


class CalendarStore:
    """
    Thin persistence boundary over an AsyncSession.

    Every SQLAlchemy failure is re-raised as DependencyError so the engine
    can fail closed without knowing about the ORM.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_events(
        self,
        artist_id: int,
        start: date_type,
        end: date_type,
    ) -> list[CalendarEvent]:
        """
        All calendar events that may occupy a date in [start, end].

        Committed sessions come first (by date and start time), followed by
        stored events (by start date). Repeating templates anchored before
        the window are included; the recurrence expander decides whether an
        occurrence actually lands in it.
        """
        sessions_stmt = (
            select(SessionRecord, Project)
            .join(Project, SessionRecord.project_id == Project.id)
            .where(
                and_(
                    Project.artist_id == artist_id,
                    SessionRecord.date >= start,
                    SessionRecord.date <= end,
                )
            )
            .order_by(SessionRecord.date, SessionRecord.start_time, SessionRecord.id)
        )
        events_stmt = (
            select(CalendarEventRecord)
            .where(
                and_(
                    CalendarEventRecord.artist_id == artist_id,
                    CalendarEventRecord.start_date <= end,
                    or_(
                        CalendarEventRecord.end_date >= start,
                        CalendarEventRecord.is_repeat.is_(True),
                    ),
                )
            )
            .order_by(
                CalendarEventRecord.start_date,
                CalendarEventRecord.start_time,
                CalendarEventRecord.id,
            )
        )

        try:
            session_rows = (await self.db.execute(sessions_stmt)).all()
            event_rows = (await self.db.execute(events_stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise DependencyError(f"Failed to fetch events: {exc}") from exc

        events: list[CalendarEvent] = []
        # A malformed row could hide a block; the whole read fails closed.
        for record, project in session_rows:
            try:
                events.append(session_to_event(record, project))
            except (InvalidRecurrence, PydanticValidationError, ValueError) as exc:
                logger.error("Unreadable session id=%s artist_id=%s: %s", record.id, artist_id, exc)
                raise DependencyError(f"Unreadable session {record.id}: {exc}") from exc
        for record in event_rows:
            try:
                events.append(record_to_event(record))
            except (InvalidRecurrence, PydanticValidationError, ValueError) as exc:
                logger.error("Unreadable event id=%s artist_id=%s: %s", record.id, artist_id, exc)
                raise DependencyError(f"Unreadable calendar event {record.id}: {exc}") from exc
        return events

    async def load_artist(self, artist_id: int) -> Optional[ArtistProfile]:
        try:
            result = await self.db.execute(select(Artist).where(Artist.id == artist_id))
            artist = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise DependencyError(f"Failed to load artist: {exc}") from exc

        if artist is None:
            return None
        return ArtistProfile(
            id=artist.id,
            full_name=artist.full_name,
            email=artist.email,
            flow=ArtistFlow.model_validate(artist.flow or {}),
            locations=[ArtistLocation.model_validate(loc) for loc in artist.locations],
        )

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    async def get_client(self, artist_id: int, client_id: int) -> Optional[Client]:
        stmt = select(Client).where(Client.id == client_id, Client.artist_id == artist_id)
        try:
            return (await self.db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise DependencyError(f"Failed to load client: {exc}") from exc

    async def find_client_by_email(self, artist_id: int, email: str) -> Optional[Client]:
        stmt = select(Client).where(Client.artist_id == artist_id, Client.email == email)
        try:
            return (await self.db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise DependencyError(f"Failed to look up client: {exc}") from exc

    async def add_client(
        self, artist_id: int, full_name: str, email: str, phone_number: str
    ) -> Client:
        """
        Stage a new client in the current transaction (flushed, not committed).
        """
        client = Client(
            artist_id=artist_id,
            full_name=full_name,
            email=email,
            phone_number=phone_number,
        )
        self.db.add(client)
        try:
            await self.db.flush()
        except SQLAlchemyError as exc:
            raise DependencyError(f"Failed to create client: {exc}") from exc
        return client

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_booking(
        self,
        *,
        artist_id: int,
        client_id: int,
        title: str,
        deposit_amount: float,
        notes: str | None,
        sessions: Sequence[dict[str, Any]],
    ) -> tuple[Project, list[SessionRecord]]:
        """
        Insert one project and its session rows, then commit once.

        Either every row is written or none is: on failure the whole
        transaction (including any client staged earlier) is rolled back.
        """
        project = Project(
            artist_id=artist_id,
            client_id=client_id,
            title=title,
            deposit_amount=deposit_amount,
            notes=notes,
        )
        records = [SessionRecord(project=project, **fields) for fields in sessions]
        self.db.add(project)
        self.db.add_all(records)
        try:
            await self.db.flush()
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise DependencyError(f"Failed to create sessions: {exc}") from exc
        return project, records

    async def get_session(
        self, artist_id: int, session_id: int
    ) -> Optional[tuple[SessionRecord, Project]]:
        stmt = (
            select(SessionRecord, Project)
            .join(Project, SessionRecord.project_id == Project.id)
            .where(SessionRecord.id == session_id, Project.artist_id == artist_id)
        )
        try:
            row = (await self.db.execute(stmt)).first()
        except SQLAlchemyError as exc:
            raise DependencyError(f"Failed to load session: {exc}") from exc
        if row is None:
            return None
        return row[0], row[1]

    async def save(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise DependencyError(f"Failed to save changes: {exc}") from exc

    async def rollback(self) -> None:
        try:
            await self.db.rollback()
        except SQLAlchemyError as exc:
            logger.warning("Rollback failed: %s", exc)
