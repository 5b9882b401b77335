from fastapi import Request

from fleetbuilder.services.deck_session import DeckSession


def get_deck_session(request: Request) -> DeckSession:
    """The app-wide session created in the lifespan handler."""
    session: DeckSession = request.app.state.deck_session
    return session
