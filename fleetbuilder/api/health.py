"""Liveness and readiness probes for the deckbuilder service."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from fleetbuilder.api.dependencies import get_deck_session
from fleetbuilder.db.database import get_session
from fleetbuilder.services.deck_session import DeckSession

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Probe result. Readiness also reports the database and catalog size."""

    status: str
    database: str | None = None
    catalog_units: int | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe: the process is up. Nothing else is checked."""
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    session: Annotated[AsyncSession, Depends(get_session)],
    deck_session: Annotated[DeckSession, Depends(get_deck_session)],
) -> HealthResponse:
    """
    Readiness probe.

    Checks database connectivity and that the unit catalog is loaded.
    Returns 503 if either is unavailable.
    """
    catalog_units = len(deck_session.state.catalog)
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not ready", database="disconnected", catalog_units=catalog_units
        )

    if catalog_units == 0:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not ready", database="connected", catalog_units=0)

    return HealthResponse(status="ready", database="connected", catalog_units=catalog_units)
