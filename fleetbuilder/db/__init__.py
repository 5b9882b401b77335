from fleetbuilder.db.database import dispose_db, get_session, init_db
from fleetbuilder.db.operations import (
    DatabaseDeckPersister,
    create_deck,
    deck_to_dict,
    deck_to_model,
    get_deck,
    get_decks_for_user,
)

__all__ = [
    "DatabaseDeckPersister",
    "create_deck",
    "deck_to_dict",
    "deck_to_model",
    "dispose_db",
    "get_deck",
    "get_decks_for_user",
    "get_session",
    "init_db",
]
