"""
Database CRUD operations.

Provides async functions for storing and reading saved decks.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from fleetbuilder.models.actions import PersistDeck
from fleetbuilder.models.db import DeckDB, DeckUnitDB
from fleetbuilder.models.deck import Deck
from fleetbuilder.models.faction import FactionRule
from fleetbuilder.models.failure import TransportError

logger = logging.getLogger(__name__)


async def create_deck(
    session: AsyncSession,
    user_id: str,
    deck: Deck,
    description: str | None = None,
    visibility: str = "private",
) -> DeckDB:
    """
    Insert a deck row and one unit row per entry.

    Every save creates a new row; decks are never updated in place.
    """
    db_deck = DeckDB(
        user_id=user_id,
        name=deck.name,
        description=description,
        point_cap=deck.point_cap,
        faction_rule=deck.faction_rule.value,
        visibility=visibility,
    )
    db_deck.units = [DeckUnitDB(unit_id=entry.unit_id, count=entry.count) for entry in deck]
    session.add(db_deck)
    await session.flush()
    return db_deck


async def get_deck(session: AsyncSession, deck_id: int) -> DeckDB | None:
    """Get a saved deck by id, with its unit rows loaded."""
    result = await session.execute(
        select(DeckDB).where(DeckDB.id == deck_id).options(selectinload(DeckDB.units))
    )
    return result.scalar_one_or_none()


async def get_decks_for_user(
    session: AsyncSession, user_id: str, limit: int = 50
) -> list[DeckDB]:
    """Saved decks for a user, newest first."""
    result = await session.execute(
        select(DeckDB)
        .where(DeckDB.user_id == user_id)
        .options(selectinload(DeckDB.units))
        .order_by(DeckDB.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


def deck_to_model(db_deck: DeckDB) -> Deck:
    """Convert a saved deck row to a domain model."""
    return Deck(
        name=db_deck.name,
        point_cap=db_deck.point_cap,
        faction_rule=FactionRule(db_deck.faction_rule),
        entries={unit.unit_id: unit.count for unit in db_deck.units},
    )


def deck_to_dict(db_deck: DeckDB) -> dict[str, Any]:
    return {
        "id": db_deck.id,
        "user_id": db_deck.user_id,
        "description": db_deck.description,
        "visibility": db_deck.visibility,
        "created_at": db_deck.created_at.isoformat() if db_deck.created_at else None,
        **deck_to_model(db_deck).to_dict(),
    }


class DatabaseDeckPersister:
    """
    Deck persister backed by the local database.

    Opens its own session per save so it can run outside a request. Database
    errors surface as TransportError like any other collaborator failure.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def __call__(self, request: PersistDeck) -> str:
        try:
            async with self.session_factory() as session:
                db_deck = await create_deck(
                    session,
                    request.user_id,
                    request.deck,
                    description=request.description,
                )
                deck_id = str(db_deck.id)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Database error saving deck for user %s: %s", request.user_id, e)
            raise TransportError("save the deck", detail=type(e).__name__) from e

        logger.info("Saved deck %s for user %s", deck_id, request.user_id)
        return deck_id
