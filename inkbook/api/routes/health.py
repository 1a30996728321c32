# inkbook/api/routes/health.py
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, Field

from inkbook.core.config import get_settings


router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str = Field(..., description="Overall health status.", examples=["ok"])
    app_name: str = Field(..., examples=["Inkbook Scheduling"])
    environment: str = Field(..., examples=["local"])
    timestamp_utc: datetime = Field(
        ...,
        description="Server-side timestamp (UTC) of this check.",
        examples=["2025-01-01T10:30:00Z"],
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check for the scheduling service",
    description=(
        "Liveness check. Does not touch the database, so it stays green even "
        "when the calendar store is degraded."
    ),
)
async def health_check() -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        status="ok",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        timestamp_utc=datetime.now(tz=timezone.utc),
    )
