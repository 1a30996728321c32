# inkbook/api/dependencies/artist.py
import logging
from http import HTTPStatus

from fastapi import Depends, HTTPException, Path
from sqlalchemy.ext.asyncio import AsyncSession

from inkbook.core.errors import DependencyError
from inkbook.db.session import get_db
from inkbook.schemas.calendar import ArtistProfile
from inkbook.services.calendar_store import CalendarStore

logger = logging.getLogger(__name__)


async def get_store(db: AsyncSession = Depends(get_db)) -> CalendarStore:
    return CalendarStore(db)


async def get_artist(
    artist_id: int = Path(..., description="Artist whose calendar is queried.", examples=[1]),
    store: CalendarStore = Depends(get_store),
) -> ArtistProfile:
    """
    Load the artist profile (flow settings + locations) for the path id.

    - unknown artist   -> 404
    - store unreachable -> 503
    """
    try:
        artist = await store.load_artist(artist_id)
    except DependencyError as exc:
        logger.error("Failed to load artist=%s: %s", artist_id, exc)
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="Artist could not be loaded. Please try again.",
        ) from exc

    if artist is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Artist {artist_id} not found.",
        )
    return artist
