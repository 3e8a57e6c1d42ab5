"""
Per-request database sessions.

Every request, reads included, runs in one ``AsyncSession`` inside a single
transaction: it commits when the handler returns and rolls back when a
domain error (or anything else) escapes, so a refused mutation leaves no
partial writes behind.
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession
from contextlib import asynccontextmanager

from belle.db.base import AsyncSessionLocal, async_engine


class DatabaseManager:
    """Database connection and session management."""

    def __init__(self, session_factory=AsyncSessionLocal, engine=async_engine):
        self.session_factory = session_factory
        self.engine = engine

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Session bound to one transaction; commit on exit, rollback on error."""
        async with self.session_factory() as session:
            async with session.begin():
                yield session

    async def dispose(self):
        """Close all pooled connections."""
        await self.engine.dispose()


# Global database manager
db_manager = DatabaseManager()


async def get_db_transaction() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency; cached per request, so routers and the auth dependency share it."""
    async with db_manager.transaction() as session:
        yield session
