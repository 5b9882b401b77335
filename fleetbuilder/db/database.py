"""
Database engine and session management for saved decks.

Only the database deck backend writes here; the readiness probe uses the
same engine to check connectivity.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fleetbuilder.config import settings
from fleetbuilder.models.db import Base

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Saved rows stay readable after commit (the persister returns their ids)
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session: commits on success, rolls back on database errors.

    Usage in FastAPI:
        @router.get("/decks/saved/{user_id}")
        async def list_saved(session: Annotated[AsyncSession, Depends(get_session)]):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create the `decks` and `deck_units` tables if they are missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    """Close pooled connections at shutdown."""
    await engine.dispose()
