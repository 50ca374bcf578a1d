"""Database configuration and session management."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from errors import StorageFailureError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, echo=False)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def session_scope(
    sessionmaker: async_sessionmaker[AsyncSession],
    operation: str,
    resource_id: str | None = None,
) -> AsyncIterator[AsyncSession]:
    """Session that commits on success and turns driver errors into StorageFailureError."""
    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error("Database operation %s failed for %s", operation, resource_id, exc_info=True)
            raise StorageFailureError(operation, resource_id, str(exc)) from exc


async def init_db(engine: AsyncEngine) -> None:
    """Create missing tables. SQLite parent directories are created as needed."""
    # registers every model on Base.metadata
    import orm  # noqa: F401

    database = engine.url.database
    if engine.url.get_backend_name() == "sqlite" and database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
