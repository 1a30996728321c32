# inkbook/api/routes/bookings.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, Path
from fastapi.responses import JSONResponse

from inkbook.api.dependencies.artist import get_artist, get_store
from inkbook.schemas.booking import (
    BookingErrorKind,
    BookingForm,
    BookingResult,
    RescheduleResult,
    SessionUpdate,
)
from inkbook.schemas.calendar import ArtistProfile
from inkbook.services.booking import create_manual_booking, reschedule_session
from inkbook.services.calendar_store import CalendarStore

router = APIRouter(prefix="/artists/{artist_id}", tags=["Bookings"])

_STATUS_FOR_ERROR = {
    BookingErrorKind.VALIDATION: HTTPStatus.BAD_REQUEST,
    BookingErrorKind.CONFLICT: HTTPStatus.CONFLICT,
    BookingErrorKind.DEPENDENCY: HTTPStatus.SERVICE_UNAVAILABLE,
    BookingErrorKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
}


def _failure_response(result: BookingResult | RescheduleResult) -> JSONResponse:
    status = _STATUS_FOR_ERROR.get(result.error_kind, HTTPStatus.BAD_REQUEST)
    return JSONResponse(status_code=status, content=result.model_dump(mode="json"))


@router.post(
    "/bookings/manual",
    response_model=BookingResult,
    status_code=HTTPStatus.CREATED,
    summary="Create a manual booking across one or more dates",
    description=(
        "Validates the booking form, re-checks every selected date for "
        "conflicts, finds or creates the client and writes one project with "
        "one session per date in a single transaction.\n\n"
        "Nothing is written unless every date is clear. A booking request "
        "email is sent to the client in the background."
    ),
    responses={
        201: {
            "description": "Booking created.",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "state": "SUCCEEDED",
                        "project_id": 7,
                        "client_id": 3,
                        "session_ids": [21, 22],
                        "error": None,
                        "error_kind": None,
                        "conflict_date": None,
                        "conflicting_event_title": None,
                    }
                }
            },
        },
        400: {"model": BookingResult, "description": "Missing or invalid form field."},
        404: {"description": "Artist not found."},
        409: {
            "model": BookingResult,
            "description": "One of the dates collides with an existing event.",
        },
        503: {"model": BookingResult, "description": "Calendar store unavailable."},
    },
)
async def post_manual_booking(
    payload: BookingForm,
    artist: ArtistProfile = Depends(get_artist),
    store: CalendarStore = Depends(get_store),
):
    form = payload
    if form.artist_id is None:
        form = payload.model_copy(update={"artist_id": artist.id})

    result = await create_manual_booking(store, artist, form)
    if not result.success:
        return _failure_response(result)
    return result


@router.patch(
    "/sessions/{session_id}",
    response_model=RescheduleResult,
    summary="Update or reschedule an existing session",
    description=(
        "Applies the given changes to a session. When the date, start time "
        "or length changes, the new range is checked for conflicts (ignoring "
        "the session itself) before anything is saved."
    ),
    responses={
        400: {"model": RescheduleResult, "description": "Invalid change."},
        404: {"model": RescheduleResult, "description": "Artist or session not found."},
        409: {"model": RescheduleResult, "description": "The new range collides."},
        503: {"model": RescheduleResult, "description": "Calendar store unavailable."},
    },
)
async def patch_session(
    payload: SessionUpdate,
    session_id: int = Path(..., description="Session to update."),
    artist: ArtistProfile = Depends(get_artist),
    store: CalendarStore = Depends(get_store),
):
    result = await reschedule_session(store, artist, session_id, payload)
    if not result.success:
        return _failure_response(result)
    return result
