from fleetbuilder.api.auth import router as auth_router
from fleetbuilder.api.catalog import router as catalog_router
from fleetbuilder.api.deck import router as deck_router
from fleetbuilder.api.health import router as health_router
from fleetbuilder.api.saved import router as saved_router

__all__ = [
    "auth_router",
    "catalog_router",
    "deck_router",
    "health_router",
    "saved_router",
]
