# tests/test_reschedule.py
from datetime import date, time

import pytest

from inkbook.schemas.booking import BookingErrorKind, SessionUpdate
from inkbook.services import booking as booking_module
from inkbook.services.booking import reschedule_session

TODAY = date(2025, 3, 1)
DAY = date(2025, 3, 10)


@pytest.mark.asyncio
async def test_moving_a_session_does_not_conflict_with_itself(store, profile, add_session):
    record = await add_session(DAY, time(10, 0), 60)

    result = await reschedule_session(
        store, profile, record.id, SessionUpdate(start_time="10:30"), today=TODAY
    )

    assert result.success is True
    assert result.overlap_checked is True
    assert record.start_time == time(10, 30)


@pytest.mark.asyncio
async def test_moving_into_another_session_is_rejected(db, store, profile, add_session):
    record = await add_session(DAY, time(10, 0), 60)
    await add_session(DAY, time(14, 0), 60, title="Portrait")

    result = await reschedule_session(
        store, profile, record.id, SessionUpdate(start_time="13:00"), today=TODAY
    )

    assert result.success is False
    assert result.error_kind == BookingErrorKind.CONFLICT
    assert result.conflicting_event_title == "Portrait"
    await db.refresh(record)
    assert record.start_time == time(10, 0)


@pytest.mark.asyncio
async def test_longer_session_is_rechecked(store, profile, add_session):
    record = await add_session(DAY, time(10, 0), 60)
    await add_session(DAY, time(12, 0), 60, title="Next client")

    result = await reschedule_session(
        store, profile, record.id, SessionUpdate(session_length_minutes=120), today=TODAY
    )

    assert result.error_kind == BookingErrorKind.CONFLICT


@pytest.mark.asyncio
async def test_non_timing_change_skips_overlap_check(store, profile, add_session, monkeypatch):
    record = await add_session(DAY, time(10, 0), 60)

    async def fail_if_called(*args, **kwargs):
        raise AssertionError("overlap check should not run")

    monkeypatch.setattr(booking_module, "check_overlap", fail_if_called)

    result = await reschedule_session(
        store,
        profile,
        record.id,
        SessionUpdate(notes="Bring reference photos", session_rate=300.0),
        today=TODAY,
    )

    assert result.success is True
    assert result.overlap_checked is False
    assert record.notes == "Bring reference photos"
    assert record.session_rate == 300.0


@pytest.mark.asyncio
async def test_unknown_session_is_not_found(store, profile):
    result = await reschedule_session(store, profile, 999, SessionUpdate(notes="x"), today=TODAY)

    assert result.success is False
    assert result.error_kind == BookingErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_reschedule_past_midnight_rejected(store, profile, add_session):
    record = await add_session(DAY, time(10, 0), 60)

    result = await reschedule_session(
        store, profile, record.id, SessionUpdate(start_time="23:30"), today=TODAY
    )

    assert result.error_kind == BookingErrorKind.VALIDATION


@pytest.mark.asyncio
async def test_moving_into_the_past_is_rejected(db, store, profile, add_session):
    record = await add_session(date(2025, 3, 6), time(10, 0), 60)

    result = await reschedule_session(
        store, profile, record.id, SessionUpdate(date=date(2025, 3, 2)), today=date(2025, 3, 5)
    )

    assert result.success is False
    assert result.error_kind == BookingErrorKind.VALIDATION
    assert "in the past" in result.error
    await db.refresh(record)
    assert record.date == date(2025, 3, 6)


@pytest.mark.asyncio
async def test_notes_on_a_past_session_can_still_change(store, profile, add_session):
    record = await add_session(date(2025, 2, 20), time(10, 0), 60)

    result = await reschedule_session(
        store, profile, record.id, SessionUpdate(notes="Healed well"), today=TODAY
    )

    assert result.success is True
    assert record.notes == "Healed well"


@pytest.mark.asyncio
async def test_moving_past_a_guest_spot_end_is_rejected(db, store, profile, add_session):
    record = await add_session(DAY, time(10, 0), 60, location_id=2)

    result = await reschedule_session(
        store, profile, record.id, SessionUpdate(date=date(2025, 4, 15)), today=TODAY
    )

    assert result.success is False
    assert result.error_kind == BookingErrorKind.VALIDATION
    assert "not available on 2025-04-15" in result.error
    await db.refresh(record)
    assert record.date == DAY


@pytest.mark.asyncio
async def test_switching_to_an_expired_location_is_rejected(store, profile, add_session):
    record = await add_session(date(2025, 4, 15), time(10, 0), 60)

    result = await reschedule_session(
        store, profile, record.id, SessionUpdate(location_id=2), today=TODAY
    )

    assert result.error_kind == BookingErrorKind.VALIDATION
