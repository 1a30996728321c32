# inkbook/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI

from inkbook.api.routes import availability, bookings, health, overlap
from inkbook.core.config import get_settings
from inkbook.core.logging_config import configure_logging
from inkbook.db.session import init_db_for_startup
from inkbook.services.booking import drain_notifications


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover
    await init_db_for_startup()
    yield
    await drain_notifications()


def create_app() -> FastAPI:
    """
    Application factory for the scheduling service.
    """
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Availability and conflict-resolution engine for tattoo artists:\n"
            "bookable dates and start times, overlap checks with break buffers,\n"
            "and multi-date manual bookings."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Routers
    app.include_router(health.router)
    app.include_router(availability.router)
    app.include_router(overlap.router)
    app.include_router(bookings.router)

    return app


app = create_app()
