"""
Saved deck endpoints (database backend).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from fleetbuilder.db import deck_to_model, get_deck, get_decks_for_user
from fleetbuilder.db.database import get_session
from fleetbuilder.models.db import DeckDB

router = APIRouter(prefix="/decks/saved", tags=["saved decks"])


class SavedDeckResponse(BaseModel):
    id: int
    user_id: str
    name: str
    description: str | None = None
    point_cap: int
    faction_rule: str
    visibility: str
    entries: dict[str, int] = Field(default_factory=dict)


class SavedDeckListResponse(BaseModel):
    user_id: str
    decks: list[SavedDeckResponse]
    count: int


def _to_response(db_deck: DeckDB) -> SavedDeckResponse:
    model = deck_to_model(db_deck)
    return SavedDeckResponse(
        id=db_deck.id,
        user_id=db_deck.user_id,
        name=model.name,
        description=db_deck.description,
        point_cap=model.point_cap,
        faction_rule=model.faction_rule.value,
        visibility=db_deck.visibility,
        entries=dict(model.entries),
    )


@router.get("/{user_id}", response_model=SavedDeckListResponse)
async def list_saved_decks(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> SavedDeckListResponse:
    """Saved decks for a user, newest first."""
    db_decks = await get_decks_for_user(session, user_id, limit=limit)
    decks = [_to_response(d) for d in db_decks]
    return SavedDeckListResponse(user_id=user_id, decks=decks, count=len(decks))


@router.get("/{user_id}/{deck_id}", response_model=SavedDeckResponse)
async def get_saved_deck(
    user_id: str,
    deck_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SavedDeckResponse:
    """
    One saved deck with its entries.

    Returns 404 if the deck does not exist or belongs to another user.
    """
    db_deck = await get_deck(session, deck_id)
    if db_deck is None or db_deck.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deck {deck_id} not found for user {user_id}",
        )
    return _to_response(db_deck)
