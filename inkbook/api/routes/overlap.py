# inkbook/api/routes/overlap.py
from http import HTTPStatus

from fastapi import APIRouter, Depends

from inkbook.api.dependencies.artist import get_artist, get_store
from inkbook.schemas.availability import OverlapCheck, OverlapCheckRequest
from inkbook.schemas.calendar import ArtistProfile
from inkbook.services.calendar_store import CalendarStore
from inkbook.services.overlap import check_overlap

router = APIRouter(prefix="/artists/{artist_id}", tags=["Overlap"])


@router.post(
    "/overlap-check",
    response_model=OverlapCheck,
    status_code=HTTPStatus.OK,
    summary="Check a proposed time range against the artist's calendar",
    description=(
        "Returns the first existing event that collides with the proposed "
        "range once the break buffer is applied on both sides.\n\n"
        "When the calendar could not be read, `has_overlap` is false and "
        "`error` is set; clients must treat that as a blocked write."
    ),
    responses={
        200: {
            "description": "Check completed (or failed closed with `error`).",
            "content": {
                "application/json": {
                    "example": {
                        "has_overlap": True,
                        "overlapping_event": {
                            "id": 12,
                            "artist_id": 1,
                            "title": "Lunch",
                            "source": "block_time",
                            "start_date": "2025-05-06",
                            "end_date": "2025-05-06",
                            "start_time": "12:00",
                            "end_time": "13:00",
                        },
                        "error": None,
                    }
                }
            },
        },
        404: {"description": "Artist not found."},
        422: {"description": "start_time is not before end_time."},
    },
)
async def post_overlap_check(
    payload: OverlapCheckRequest,
    artist: ArtistProfile = Depends(get_artist),
    store: CalendarStore = Depends(get_store),
) -> OverlapCheck:
    break_time = payload.break_time_minutes
    if break_time is None:
        break_time = artist.flow.break_time

    return await check_overlap(
        store,
        artist.id,
        payload.date,
        payload.start_time,
        payload.end_time,
        break_time,
        source=payload.source,
        exclude_id=payload.exclude_id,
        location_id=payload.location_id,
    )
