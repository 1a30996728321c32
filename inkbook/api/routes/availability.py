# inkbook/api/routes/availability.py
from datetime import date as date_type
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Query

from inkbook.api.dependencies.artist import get_artist, get_store
from inkbook.core.errors import ValidationError
from inkbook.schemas.availability import DateAvailability, StartTimeAvailability
from inkbook.schemas.calendar import ArtistProfile
from inkbook.services.availability import available_dates, available_start_times, month_range
from inkbook.services.calendar_store import CalendarStore

router = APIRouter(prefix="/artists/{artist_id}/availability", tags=["Availability"])


@router.get(
    "/dates",
    response_model=DateAvailability,
    summary="Bookable dates for an artist at a location",
    description=(
        "Returns the dates on which the artist can take a new session at the "
        "given location.\n\n"
        "Range selection:\n"
        "- `year` + `month` -> that calendar month\n"
        "- `start` (+ optional `end`) -> explicit range; without `end` the "
        "configured availability window from today is used\n"
        "- nothing -> from today over the availability window\n\n"
        "Past dates are never returned. If the calendar could not be read the "
        "response is empty with `warning` set."
    ),
    responses={
        200: {
            "description": "Availability computed (possibly empty).",
            "content": {
                "application/json": {
                    "example": {
                        "location_id": 1,
                        "range_start": "2025-05-01",
                        "range_end": "2025-05-31",
                        "dates": ["2025-05-06", "2025-05-07"],
                        "warning": None,
                    }
                }
            },
        },
        400: {"description": "Invalid range parameters."},
        404: {"description": "Artist not found."},
    },
)
async def get_available_dates(
    location_id: int | None = Query(None, description="Location to book at."),
    year: int | None = Query(None, ge=1900, le=2999),
    month: int | None = Query(None, ge=1, le=12),
    start: date_type | None = Query(None, description="First date of an explicit range."),
    end: date_type | None = Query(None, description="Last date of an explicit range."),
    artist: ArtistProfile = Depends(get_artist),
    store: CalendarStore = Depends(get_store),
) -> DateAvailability:
    if (year is None) != (month is None):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="year and month must be given together.",
        )

    if year is not None:
        range_start, range_end = month_range(year, month)
    else:
        range_start, range_end = start or date_type.today(), end

    if range_end is not None and range_end < range_start:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="end must not be before start.",
        )

    return await available_dates(store, artist, location_id, range_start, range_end)


@router.get(
    "/times",
    response_model=StartTimeAvailability,
    summary="Bookable start times on a single date",
    description=(
        "Start times at which a session of `session_length_minutes` fits on "
        "`date`, honouring working hours, temp changes and the break buffer "
        "around every existing event. An empty list means the day is fully "
        "booked."
    ),
    responses={
        200: {
            "description": "Start times computed (possibly empty).",
            "content": {
                "application/json": {
                    "example": {
                        "date": "2025-05-06",
                        "location_id": 1,
                        "session_length_minutes": 120,
                        "break_time_minutes": 15,
                        "start_times": [
                            {"value": "09:00", "label": "9:00 AM"},
                            {"value": "13:30", "label": "1:30 PM"},
                        ],
                        "warning": None,
                    }
                }
            },
        },
        400: {"description": "Non-positive session length or interval."},
        404: {"description": "Artist not found."},
    },
)
async def get_available_times(
    date: date_type = Query(..., description="Date to list start times for."),
    session_length_minutes: int = Query(..., description="Length of the session."),
    location_id: int | None = Query(None),
    break_time_minutes: int | None = Query(
        None,
        ge=0,
        description="Defaults to the artist's configured break time.",
    ),
    interval_minutes: int | None = Query(
        None,
        description="Candidate granularity; defaults to SLOT_INTERVAL_MINUTES.",
    ),
    artist: ArtistProfile = Depends(get_artist),
    store: CalendarStore = Depends(get_store),
) -> StartTimeAvailability:
    try:
        return await available_start_times(
            store,
            artist,
            date,
            session_length_minutes,
            break_time_minutes,
            location_id,
            interval_minutes=interval_minutes,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
