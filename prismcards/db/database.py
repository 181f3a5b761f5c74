"""
Database handle and session management.

A single `Database` object owns the async engine and session factory.
The application creates one at startup and stores it on `app.state`;
request handlers receive sessions through the `get_session` dependency.
"""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from prismcards.models.db import Base

logger = logging.getLogger(__name__)


class Database:
    """
    Lifecycle-managed connection pool.

    `connect()` is idempotent: the first call builds the engine, later calls
    reuse it. `dispose()` releases the pool; a later `connect()` rebuilds it.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def connect(self) -> async_sessionmaker[AsyncSession]:
        """Create the engine on first use and return the session factory."""
        if self._session_factory is None:
            logger.info("Connecting to database")
            self._engine = create_async_engine(
                self.url,
                echo=self.echo,
                pool_pre_ping=True,
            )
            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_factory

    @property
    def engine(self) -> AsyncEngine:
        self.connect()
        assert self._engine is not None
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Provide a unit-of-work session.

        Commits when the block exits cleanly, rolls back on database errors.
        """
        factory = self.connect()
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create all tables defined in the ORM models."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        """
        Drop all database tables.

        WARNING: Destroys all data. Use only for testing.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Close pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database connections closed")
        self._engine = None
        self._session_factory = None


def get_database(request: Request) -> Database:
    """Resolve the application's database handle."""
    database: Database = request.app.state.database
    return database


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    Usage in FastAPI:
        @router.get("/items")
        async def get_items(session: AsyncSession = Depends(get_session)):
            ...
    """
    async with get_database(request).session() as session:
        yield session
