# tests/test_availability.py
from datetime import date, datetime, time

import pytest

from inkbook.core.errors import DependencyError, ValidationError
from inkbook.services.availability import (
    UNAVAILABLE_WARNING,
    available_dates,
    available_start_times,
    month_range,
)

TODAY = date(2025, 3, 1)
MORNING = datetime(2025, 3, 1, 7, 0)


class FailingStore:
    async def list_events(self, artist_id, start, end):
        raise DependencyError("connection refused")


def _values(result) -> list[str]:
    return [str(opt.value) for opt in result.start_times]


def test_month_range_handles_short_months():
    assert month_range(2025, 2) == (date(2025, 2, 1), date(2025, 2, 28))
    assert month_range(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_range(2025, 12) == (date(2025, 12, 1), date(2025, 12, 31))


@pytest.mark.asyncio
async def test_end_to_end_start_times_respect_break_around_session(store, profile, add_session):
    """
    break_time=15 and a session 10:00-11:00 on 2025-03-10: with 30 minute
    sessions at 15 minute granularity, starts 09:45 through 11:00 are
    excluded and 11:15 onwards is offered.
    """
    await add_session(date(2025, 3, 10), time(10, 0), 60)

    result = await available_start_times(
        store,
        profile,
        date(2025, 3, 10),
        30,
        15,
        1,
        interval_minutes=15,
        now=MORNING,
    )
    values = _values(result)

    for blocked in ("09:45", "10:00", "10:30", "11:00"):
        assert blocked not in values
    assert "09:15" in values
    assert "11:15" in values
    assert values == sorted(values)
    assert result.warning is None


@pytest.mark.asyncio
async def test_start_times_are_idempotent(store, profile, add_session):
    await add_session(date(2025, 3, 10), time(13, 0), 120)

    first = await available_start_times(store, profile, date(2025, 3, 10), 60, now=MORNING, location_id=1)
    second = await available_start_times(store, profile, date(2025, 3, 10), 60, now=MORNING, location_id=1)

    assert first == second


@pytest.mark.asyncio
async def test_start_times_use_artist_break_and_labels(store, profile, add_session):
    await add_session(date(2025, 3, 10), time(12, 0), 60)

    result = await available_start_times(
        store, profile, date(2025, 3, 10), 60, location_id=1, now=MORNING
    )

    assert result.break_time_minutes == 15
    assert "13:00" not in _values(result)
    assert "13:30" in _values(result)
    option = next(o for o in result.start_times if str(o.value) == "13:30")
    assert option.label == "1:30 PM"


@pytest.mark.asyncio
async def test_start_times_stay_within_business_hours(db, store, artist):
    artist.flow = {
        "break_time": 0,
        "work_days": ["mon"],
        "start_times": {"mon": "10:00"},
        "end_times": {"mon": "14:00"},
    }
    await db.commit()
    profile = await store.load_artist(artist.id)

    result = await available_start_times(
        store, profile, date(2025, 3, 10), 120, location_id=1, now=MORNING
    )

    assert _values(result) == ["10:00", "10:30", "11:00", "11:30", "12:00"]


@pytest.mark.asyncio
async def test_start_times_drop_times_already_passed_today(store, profile):
    result = await available_start_times(
        store,
        profile,
        date(2025, 3, 10),
        60,
        location_id=1,
        now=datetime(2025, 3, 10, 21, 10),
    )

    assert _values(result) == ["21:30", "22:00", "22:30"]


@pytest.mark.asyncio
async def test_start_times_empty_on_unavailable_day(store, profile, add_event):
    await add_event(source="mark_unavailable", start_date=date(2025, 3, 10), title="Holiday")

    result = await available_start_times(store, profile, date(2025, 3, 10), 60, location_id=1, now=MORNING)

    assert result.start_times == []
    assert result.warning is None


@pytest.mark.asyncio
async def test_start_times_invalid_length_rejected(store, profile):
    with pytest.raises(ValidationError):
        await available_start_times(store, profile, date(2025, 3, 10), 0, location_id=1, now=MORNING)


@pytest.mark.asyncio
async def test_start_times_fail_closed(profile):
    result = await available_start_times(
        FailingStore(), profile, date(2025, 3, 10), 60, location_id=1, now=MORNING
    )

    assert result.start_times == []
    assert result.warning == UNAVAILABLE_WARNING


@pytest.mark.asyncio
async def test_partially_blocked_date_stays_available(store, profile, add_session):
    await add_session(date(2025, 3, 10), time(10, 0), 240)

    result = await available_dates(store, profile, 1, *month_range(2025, 3), today=TODAY)

    assert date(2025, 3, 10) in result.dates
    assert len(result.dates) == 31


@pytest.mark.asyncio
async def test_unavailable_and_book_off_days_are_removed(store, profile, add_event):
    await add_event(source="mark_unavailable", start_date=date(2025, 3, 10))
    await add_event(source="book_off", start_date=date(2025, 3, 12), end_date=date(2025, 3, 13))

    result = await available_dates(store, profile, 1, *month_range(2025, 3), today=TODAY)

    for day in (date(2025, 3, 10), date(2025, 3, 12), date(2025, 3, 13)):
        assert day not in result.dates
    assert date(2025, 3, 11) in result.dates


@pytest.mark.asyncio
async def test_recurring_unavailable_day_blocks_each_occurrence(store, profile, add_event):
    await add_event(
        source="mark_unavailable",
        start_date=date(2025, 3, 3),
        is_repeat=True,
        repeat_type="weekly",
        repeat_duration=3,
        repeat_duration_unit="weeks",
    )

    result = await available_dates(store, profile, 1, *month_range(2025, 3), today=TODAY)
    missing = sorted(set(_all_march()) - set(result.dates))

    assert missing == [date(2025, 3, 3), date(2025, 3, 10), date(2025, 3, 17)]


@pytest.mark.asyncio
async def test_all_day_block_time_scoped_to_location(store, profile, add_event):
    await add_event(source="block_time", start_date=date(2025, 3, 10), location_id=2)

    at_other = await available_dates(store, profile, 1, *month_range(2025, 3), today=TODAY)
    at_same = await available_dates(store, profile, 2, *month_range(2025, 3), today=TODAY)

    assert date(2025, 3, 10) in at_other.dates
    assert date(2025, 3, 10) not in at_same.dates


@pytest.mark.asyncio
async def test_offered_dates_agree_with_start_times(store, profile, add_event):
    await add_event(source="block_time", start_date=date(2025, 3, 10), location_id=2)

    for location_id in (1, 2):
        dates = await available_dates(store, profile, location_id, *month_range(2025, 3), today=TODAY)
        times = await available_start_times(
            store, profile, date(2025, 3, 10), 60, location_id=location_id, now=MORNING
        )

        assert (date(2025, 3, 10) in dates.dates) == bool(times.start_times)

    at_main = await available_start_times(store, profile, date(2025, 3, 10), 60, location_id=1, now=MORNING)
    assert "10:00" in _values(at_main)


@pytest.mark.asyncio
async def test_available_dates_are_idempotent(store, profile, add_session, add_event):
    await add_session(date(2025, 3, 10), time(10, 0), 240)
    await add_event(source="book_off", start_date=date(2025, 3, 12), end_date=date(2025, 3, 13))

    first = await available_dates(store, profile, 1, *month_range(2025, 3), today=TODAY)
    second = await available_dates(store, profile, 1, *month_range(2025, 3), today=TODAY)

    assert first == second
    assert date(2025, 3, 12) not in first.dates


@pytest.mark.asyncio
async def test_unreadable_stored_event_fails_closed(store, profile, add_event):
    await add_event(source="block_time", start_date=date(2025, 3, 10), start_time=time(10, 0), end_time=time(9, 0))

    dates = await available_dates(store, profile, 1, *month_range(2025, 3), today=TODAY)
    times = await available_start_times(store, profile, date(2025, 3, 10), 60, location_id=1, now=MORNING)

    assert dates.dates == []
    assert dates.warning == UNAVAILABLE_WARNING
    assert times.start_times == []
    assert times.warning == UNAVAILABLE_WARNING


@pytest.mark.asyncio
async def test_expired_location_has_no_dates_after_end(store, profile):
    result = await available_dates(store, profile, 2, *month_range(2025, 3), today=TODAY)

    assert result.dates[-1] == date(2025, 3, 20)
    assert len(result.dates) == 20

    later = await available_dates(store, profile, 2, *month_range(2025, 4), today=date(2025, 4, 1))
    assert later.dates == []


@pytest.mark.asyncio
async def test_past_dates_are_excluded(store, profile):
    result = await available_dates(store, profile, 1, *month_range(2025, 3), today=date(2025, 3, 15))

    assert result.dates[0] == date(2025, 3, 15)


@pytest.mark.asyncio
async def test_temp_change_overrides_working_days(store, profile, add_event):
    # Only Mondays are worked between the 10th and the 16th.
    await add_event(
        source="temp_change",
        start_date=date(2025, 3, 10),
        end_date=date(2025, 3, 16),
        business_hours={"work_days": ["mon"], "start_times": {}, "end_times": {}},
    )

    result = await available_dates(store, profile, 1, *month_range(2025, 3), today=TODAY)
    week = [d for d in result.dates if date(2025, 3, 10) <= d <= date(2025, 3, 16)]

    assert week == [date(2025, 3, 10)]
    assert date(2025, 3, 18) in result.dates


@pytest.mark.asyncio
async def test_unknown_location_returns_nothing(store, profile):
    result = await available_dates(store, profile, 99, *month_range(2025, 3), today=TODAY)

    assert result.dates == []
    assert result.warning is None


@pytest.mark.asyncio
async def test_available_dates_fail_closed(profile):
    result = await available_dates(FailingStore(), profile, 1, *month_range(2025, 3), today=TODAY)

    assert result.dates == []
    assert result.warning == UNAVAILABLE_WARNING


def _all_march() -> list[date]:
    return [date(2025, 3, d) for d in range(1, 32)]
