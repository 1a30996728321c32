# inkbook/services/booking.py
from __future__ import annotations

import asyncio
import logging
from datetime import date as date_type
from typing import Awaitable, Callable, Optional, Union

from inkbook.core.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from inkbook.models.client import Client
from inkbook.schemas.booking import (
    BookedSession,
    BookingErrorKind,
    BookingForm,
    BookingNotice,
    BookingResult,
    BookingState,
    RescheduleResult,
    SessionUpdate,
)
from inkbook.schemas.calendar import ArtistLocation, ArtistProfile, TimeRange, WallClockTime
from inkbook.services.calendar_store import CalendarStore
from inkbook.services.email_notifier import send_booking_request_email
from inkbook.services.overlap import check_overlap

logger = logging.getLogger(__name__)

Notifier = Callable[[BookingNotice], Union[Awaitable[object], object]]

# Strong references to fire-and-forget notification tasks.
_background_tasks: set[asyncio.Task] = set()


async def email_notifier(notice: BookingNotice) -> bool:
    """Default notifier: send the SMTP email off the event loop."""
    return await asyncio.to_thread(send_booking_request_email, notice)


async def _run_notifier(notifier: Notifier, notice: BookingNotice) -> None:
    try:
        outcome = notifier(notice)
        if asyncio.iscoroutine(outcome) or isinstance(outcome, asyncio.Future):
            await outcome
    except Exception:
        logger.exception("Booking notification failed for %s", notice.client_email)


def dispatch_notification(notifier: Optional[Notifier], notice: BookingNotice) -> None:
    """
    Schedule the notifier without waiting for it. Its failure is logged and
    never reported as a booking failure.
    """
    if notifier is None:
        return
    task = asyncio.get_running_loop().create_task(_run_notifier(notifier, notice))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


async def drain_notifications() -> None:
    """Wait for pending notification tasks (shutdown and tests)."""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)


class BookingAttempt:
    """
    Tracks one booking attempt through
    IDLE -> VALIDATING -> CHECKING_CONFLICTS -> RESOLVING_CLIENT
    -> PERSISTING -> SUCCEEDED | FAILED.
    """

    _ALLOWED = {
        BookingState.IDLE: {BookingState.VALIDATING},
        BookingState.VALIDATING: {BookingState.CHECKING_CONFLICTS, BookingState.FAILED},
        BookingState.CHECKING_CONFLICTS: {BookingState.RESOLVING_CLIENT, BookingState.FAILED},
        BookingState.RESOLVING_CLIENT: {BookingState.PERSISTING, BookingState.FAILED},
        BookingState.PERSISTING: {BookingState.SUCCEEDED, BookingState.FAILED},
        BookingState.SUCCEEDED: set(),
        BookingState.FAILED: set(),
    }

    def __init__(self, artist_id: int):
        self.artist_id = artist_id
        self.state = BookingState.IDLE

    def advance(self, state: BookingState) -> None:
        if state not in self._ALLOWED[self.state]:
            raise RuntimeError(f"illegal booking transition {self.state.value} -> {state.value}")
        logger.debug("Booking artist=%s: %s -> %s", self.artist_id, self.state.value, state.value)
        self.state = state

    def fail(self, exc: SchedulingError) -> BookingResult:
        failed_in = self.state
        self.advance(BookingState.FAILED)

        if isinstance(exc, ConflictError):
            kind = BookingErrorKind.CONFLICT
            logger.info("Booking artist=%s rejected: %s", self.artist_id, exc)
            return BookingResult(
                success=False,
                state=self.state,
                error=str(exc),
                error_kind=kind,
                conflict_date=exc.conflict_date,
                conflicting_event_title=exc.event_title,
            )
        if isinstance(exc, DependencyError):
            logger.error(
                "Booking artist=%s failed during %s: %s",
                self.artist_id,
                failed_in.value,
                exc,
            )
            return BookingResult(
                success=False,
                state=self.state,
                error="Something went wrong while saving the booking. Please try again.",
                error_kind=BookingErrorKind.DEPENDENCY,
            )

        logger.info("Booking artist=%s invalid: %s", self.artist_id, exc)
        return BookingResult(
            success=False,
            state=self.state,
            error=str(exc),
            error_kind=BookingErrorKind.VALIDATION,
        )


def _validate(
    artist: ArtistProfile,
    form: BookingForm,
    today: date_type,
) -> tuple[list[TimeRange], ArtistLocation]:
    """
    Turn the form into one TimeRange per date, in the order the dates were
    selected. Raises ValidationError at the first problem.
    """
    if form.artist_id != artist.id:
        raise ValidationError("Missing artist")
    if not form.dates:
        raise ValidationError("Please select at least one date")
    missing = [d for d in form.dates if form.start_times.get(d) is None]
    if missing:
        raise ValidationError(f"Please select a start time for {missing[0].isoformat()}")
    if len(set(form.dates)) != len(form.dates):
        raise ValidationError("Each date can only be booked once")
    if not form.title.strip():
        raise ValidationError("Missing project title")
    if form.session_length_minutes <= 0:
        raise ValidationError("Invalid session length")

    location = artist.bookable_location(form.location_id, today)
    if location is None:
        raise ValidationError("Missing location")

    ranges: list[TimeRange] = []
    for day in form.dates:
        if day < today:
            raise ValidationError(f"{day.isoformat()} is in the past")
        if not location.is_open_on(day):
            raise ValidationError(f"{location.name or 'Location'} is not available on {day.isoformat()}")
        try:
            ranges.append(
                TimeRange.for_session(day, form.start_times[day], form.session_length_minutes)
            )
        except ValueError:
            raise ValidationError(
                f"Session on {day.isoformat()} would run past midnight"
            ) from None
    return ranges, location


async def _resolve_client(store: CalendarStore, artist_id: int, form: BookingForm) -> Client:
    if form.client_id is not None:
        client = await store.get_client(artist_id, form.client_id)
        if client is None:
            raise ValidationError("Client not found")
        return client

    contact = form.client
    full_name = (contact.full_name if contact else "").strip()
    email = (contact.email if contact else "").strip().lower()
    phone = (contact.phone_number if contact else "").strip()
    if not full_name:
        raise ValidationError("Client full name is required")
    if not email:
        raise ValidationError("Client email is required")
    if not phone:
        raise ValidationError("Client phone number is required")

    existing = await store.find_client_by_email(artist_id, email)
    if existing is not None:
        return existing
    logger.info("Creating client %s for artist=%s", email, artist_id)
    return await store.add_client(artist_id, full_name, email, phone)


async def create_manual_booking(
    store: CalendarStore,
    artist: ArtistProfile,
    form: BookingForm,
    *,
    notifier: Optional[Notifier] = email_notifier,
    today: date_type | None = None,
) -> BookingResult:
    """
    Validate and persist a manual (quote) booking across one or more dates.

    Steps
    -----
    1) Validate the form: dates, a start time per date, title, length,
       location.
    2) Re-run the overlap detector for every date, sequentially; the first
       conflict (or detector error) aborts the whole booking.
    3) Resolve the client by id, else by email, else create it.
    4) Write one project and one session per date in a single transaction.
    5) Fire-and-forget the booking email to the client.

    No row is written unless every step before persistence succeeded.
    """
    today = today or date_type.today()
    attempt = BookingAttempt(artist.id)
    attempt.advance(BookingState.VALIDATING)

    try:
        ranges, location = _validate(artist, form, today)

        attempt.advance(BookingState.CHECKING_CONFLICTS)
        for rng in ranges:
            check = await check_overlap(
                store,
                artist.id,
                rng.date,
                rng.start_time,
                rng.end_time,
                artist.flow.break_time,
                source="manual",
                location_id=location.id,
            )
            if check.error is not None:
                raise DependencyError(f"Conflict check failed for {rng.date}: {check.error}")
            if check.has_overlap:
                title = check.overlapping_event.title if check.overlapping_event else None
                raise ConflictError(
                    f"Time conflict on {rng.date.isoformat()}: overlaps with "
                    f"{title or 'an existing event'}",
                    conflict_date=rng.date,
                    event_title=title,
                )

        attempt.advance(BookingState.RESOLVING_CLIENT)
        client = await _resolve_client(store, artist.id, form)

        attempt.advance(BookingState.PERSISTING)
        project, records = await store.create_booking(
            artist_id=artist.id,
            client_id=client.id,
            title=form.title.strip(),
            deposit_amount=form.deposit_amount,
            notes=form.notes,
            sessions=[
                {
                    "date": rng.date,
                    "start_time": rng.start_time.to_time(),
                    "duration": form.session_length_minutes,
                    "location_id": location.id,
                    "session_rate": form.session_rate,
                    "notes": form.notes,
                    "source": "manual",
                }
                for rng in ranges
            ],
        )
    except SchedulingError as exc:
        await store.rollback()
        return attempt.fail(exc)

    attempt.advance(BookingState.SUCCEEDED)
    logger.info(
        "Booked project=%s with %d session(s) for artist=%s client=%s",
        project.id,
        len(records),
        artist.id,
        client.id,
    )

    notice = BookingNotice(
        artist_name=artist.full_name,
        client_name=client.full_name,
        client_email=client.email,
        title=project.title,
        location_name=location.name or None,
        sessions=[
            BookedSession(
                session_id=record.id,
                date=rng.date,
                start_time=rng.start_time,
                end_time=rng.end_time,
            )
            for record, rng in zip(records, ranges)
        ],
        deposit_amount=form.deposit_amount,
        session_rate=form.session_rate,
        notes=form.notes,
    )
    dispatch_notification(notifier, notice)

    return BookingResult(
        success=True,
        state=attempt.state,
        project_id=project.id,
        client_id=client.id,
        session_ids=[record.id for record in records],
    )


async def reschedule_session(
    store: CalendarStore,
    artist: ArtistProfile,
    session_id: int,
    update: SessionUpdate,
    *,
    today: date_type | None = None,
) -> RescheduleResult:
    """
    Apply changes to an existing session.

    The overlap detector runs (excluding the session itself) only when the
    date, start time or length actually changed.
    """
    today = today or date_type.today()

    try:
        found = await store.get_session(artist.id, session_id)
        if found is None:
            raise NotFoundError(f"Session {session_id} not found")
        record, _project = found

        new_date = update.date or record.date
        new_start = update.start_time or WallClockTime.parse(record.start_time)
        new_length = update.session_length_minutes or record.duration
        try:
            rng = TimeRange.for_session(new_date, new_start, new_length)
        except ValueError:
            raise ValidationError("Session would run past midnight") from None

        location_id = record.location_id
        if update.location_id is not None:
            location_id = update.location_id
        location_changed = location_id != record.location_id
        if location_changed and artist.bookable_location(location_id, today) is None:
            raise ValidationError("Missing location")
        location = next((loc for loc in artist.locations if loc.id == location_id), None)

        timing_changed = (
            new_date != record.date
            or new_start != WallClockTime.parse(record.start_time)
            or new_length != record.duration
        )
        if timing_changed or location_changed:
            if rng.date < today:
                raise ValidationError(f"{rng.date.isoformat()} is in the past")
            if location is not None and not location.is_open_on(rng.date):
                raise ValidationError(
                    f"{location.name or 'Location'} is not available on {rng.date.isoformat()}"
                )
        if timing_changed:
            check = await check_overlap(
                store,
                artist.id,
                rng.date,
                rng.start_time,
                rng.end_time,
                artist.flow.break_time,
                source="session",
                exclude_id=record.id,
                location_id=location_id,
            )
            if check.error is not None:
                raise DependencyError(check.error)
            if check.has_overlap:
                title = check.overlapping_event.title if check.overlapping_event else None
                raise ConflictError(
                    f"Time conflict on {rng.date.isoformat()}: overlaps with "
                    f"{title or 'an existing event'}",
                    conflict_date=rng.date,
                    event_title=title,
                )

        record.date = rng.date
        record.start_time = rng.start_time.to_time()
        record.duration = new_length
        record.location_id = location_id
        if update.session_rate is not None:
            record.session_rate = update.session_rate
        if update.notes is not None:
            record.notes = update.notes
        await store.save()
    except ConflictError as exc:
        await store.rollback()
        return RescheduleResult(
            success=False,
            session_id=session_id,
            overlap_checked=True,
            error=str(exc),
            error_kind=BookingErrorKind.CONFLICT,
            conflicting_event_title=exc.event_title,
        )
    except DependencyError as exc:
        await store.rollback()
        logger.error("Reschedule of session=%s failed: %s", session_id, exc)
        return RescheduleResult(
            success=False,
            session_id=session_id,
            error="Something went wrong while saving the session. Please try again.",
            error_kind=BookingErrorKind.DEPENDENCY,
        )
    except NotFoundError as exc:
        return RescheduleResult(
            success=False,
            session_id=session_id,
            error=str(exc),
            error_kind=BookingErrorKind.NOT_FOUND,
        )
    except ValidationError as exc:
        await store.rollback()
        return RescheduleResult(
            success=False,
            session_id=session_id,
            error=str(exc),
            error_kind=BookingErrorKind.VALIDATION,
        )

    return RescheduleResult(success=True, session_id=session_id, overlap_checked=timing_changed)
