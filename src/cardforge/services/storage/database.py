"""Async SQLAlchemy engine and session management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .migrations import upgrade_head


class Database:
    """Own the async engine and hand out sessions to the services."""

    def __init__(self, url: str) -> None:
        self._database_url = url
        self._engine: AsyncEngine = create_async_engine(url, future=True)
        self._session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self._engine,
            expire_on_commit=False,
        )
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    @property
    def url(self) -> str:
        return self._database_url

    async def initialize(self) -> None:
        """Ensure the database schema is migrated to the latest revision."""
        await upgrade_head(self._database_url)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Provide an async session; uncommitted work is rolled back on exit."""
        async with self._session_factory() as session:
            yield session

    async def dispose(self) -> None:
        """Close the underlying engine."""
        await self._engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
