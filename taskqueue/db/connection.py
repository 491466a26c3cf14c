"""
Database connection management.
Handles the async SQLAlchemy engine and session creation.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from taskqueue.config import Settings, get_settings
from taskqueue.db.models import Base

logger = logging.getLogger(__name__)


class Database:
    """
    Handle on the shared connection pool.

    Constructed once per process and passed explicitly to the API and to
    every claim worker. Each logical operation checks out its own session
    and transaction through `session()`.
    """

    def __init__(self, engine: AsyncEngine):
        """
        Initialize the handle around an engine.

        Args:
            engine: The SQLAlchemy async engine.
        """
        self.engine = engine
        self.sessionmaker = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Database":
        """
        Create the database handle from application settings.

        Args:
            settings: Optional settings, defaults to the cached settings.

        Returns:
            Database: A handle with a pooled engine.
        """
        settings = settings or get_settings()
        engine = create_async_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            echo=settings.log_level == "DEBUG",
            pool_pre_ping=True,
        )
        logger.info("Database engine created")
        return cls(engine)

    @classmethod
    def for_testing(cls, database_url: str) -> "Database":
        """
        Create a database handle with NullPool.

        Args:
            database_url: The database URL for testing.

        Returns:
            Database: A handle whose connections are not pooled.
        """
        return cls(create_async_engine(database_url, poolclass=NullPool, echo=False))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """
        Open a session wrapped in a single transaction.

        Commits on a clean exit. Any exception rolls the transaction back,
        releasing every row lock taken inside it, and is re-raised.

        Yields:
            AsyncSession: An async database session.
        """
        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    async def create_schema(self) -> None:
        """Create all tables. Production deployments use the Alembic revision."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Check connectivity with a trivial query."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        """
        Close the connection pool.
        Should be called on shutdown.
        """
        await self.engine.dispose()
        logger.info("Database connection closed")


def get_database(request: Request) -> Database:
    """Dependency returning the handle stored on the application."""
    return request.app.state.database


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """
    Dependency for getting async database sessions.

    Yields:
        AsyncSession: An async database session.
    """
    async with get_database(request).session() as session:
        yield session
