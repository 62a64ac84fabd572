"""
Database session management with SQLAlchemy async
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
import logging

logger = logging.getLogger(__name__)


class Database:
    """
    Owns one async engine and its session factory.

    Constructed once by the process entry point and passed to the components
    that need storage; ``dispose()`` releases the pool on shutdown.
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any):
        self.url = url
        self.engine = create_async_engine(url, echo=echo, future=True, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session, closed when the block exits"""
        async with self.session_maker() as session:
            yield session

    async def create_all(self):
        """Create every table registered on the declarative base"""
        from models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    async def dispose(self):
        await self.engine.dispose()
        logger.info("Database engine disposed")


def dialect_insert(session: AsyncSession, model):
    """
    Return an ``INSERT`` construct supporting ``on_conflict_do_update``.

    PostgreSQL in production, SQLite in tests.
    """
    dialect_name = session.bind.dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert(model)
    if dialect_name == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upserts are not supported for dialect '{dialect_name}'")
