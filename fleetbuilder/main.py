import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fleetbuilder.api import (
    auth_router,
    catalog_router,
    deck_router,
    health_router,
    saved_router,
)
from fleetbuilder.clients.supabase import SupabaseClient
from fleetbuilder.config import settings
from fleetbuilder.db.database import async_session_factory, dispose_db, init_db
from fleetbuilder.db.operations import DatabaseDeckPersister
from fleetbuilder.models.failure import (
    KnownError,
    TransportError,
    create_known_failure,
    create_unknown_failure,
)
from fleetbuilder.models.unit import Unit
from fleetbuilder.services.catalog import load_catalog_file
from fleetbuilder.services.cooldown import CooldownStore
from fleetbuilder.services.deck_session import Collaborators, DeckSession

logger = logging.getLogger(__name__)


def build_collaborators(client: SupabaseClient) -> Collaborators:
    """Wire the hosted client, the optional local catalog and the configured deck backend."""

    async def load_local_catalog() -> list[Unit]:
        path = Path(settings.catalog_path)
        try:
            return load_catalog_file(path)
        except (OSError, ValueError) as e:
            logger.error("Could not read catalog file %s: %s", path, e)
            raise TransportError("load the unit catalog", detail=str(e)) from e

    return Collaborators(
        fetch_catalog=load_local_catalog if settings.catalog_path else client.fetch_catalog,
        fetch_ownership=client.fetch_ownership,
        request_magic_link=client.request_magic_link,
        get_user=client.get_user,
        save_deck=(
            DatabaseDeckPersister(async_session_factory)
            if settings.deck_backend == "database"
            else client.save_deck
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()

    async with SupabaseClient.from_settings() as client:
        session = DeckSession(
            build_collaborators(client),
            cooldown_store=CooldownStore(settings.cooldown_state_path),
        )
        await session.start()
        app.state.deck_session = session
        try:
            yield
        finally:
            await session.close()
            await dispose_db()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("fleetbuilder"),
    lifespan=lifespan,
)

app.include_router(auth_router)
app.include_router(catalog_router)
app.include_router(deck_router)
app.include_router(health_router)
app.include_router(saved_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Report a known failure in the response envelope with its own status."""
    response = create_known_failure(exc)
    return JSONResponse(status_code=exc.status_code, content=response.model_dump(mode="json"))


@app.exception_handler(Exception)
async def unknown_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Anything unclassified still leaves as an envelope, never a raw 500 page."""
    logger.exception("Unhandled error: %s", type(exc).__name__)
    response = create_unknown_failure(exc)
    return JSONResponse(status_code=500, content=response.model_dump(mode="json"))
