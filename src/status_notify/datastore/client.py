"""Datastore — owns the engine, the ``project_statuses`` schema and sessions."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from status_notify.datastore.engines import create_engine
from status_notify.datastore.models import Base

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from status_notify.config.settings import DatabaseConfig

logger = logging.getLogger(__name__)


class Datastore:
    """Async access to the status configuration database.

    Usage::

        ds = Datastore(db_config)
        await ds.open()
        async with ds.transaction() as session:
            session.add(row)
        await ds.close()
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        """The underlying async engine.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        if self._engine is None:
            msg = "Datastore is not open. Call open() first."
            raise RuntimeError(msg)
        return self._engine

    async def open(self, *, create_schema: bool = True) -> None:
        """Connect, and create missing tables unless *create_schema* is False.

        Opening an already open datastore is a no-op.
        """
        if self._engine is not None:
            return
        self._engine = create_engine(self._config)
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)
        if create_schema:
            await self.create_schema()
        logger.debug("Datastore opened (%s)", self._config.engine)

    async def create_schema(self) -> None:
        """Create any missing tables. Existing tables are left untouched."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self) -> None:
        """Dispose the engine. Safe to call more than once."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None

    def session(self) -> AsyncSession:
        """A new session; the caller commits.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        if self._sessions is None:
            msg = "Datastore is not open. Call open() first."
            raise RuntimeError(msg)
        return self._sessions()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Session committed on success and rolled back on error."""
        async with self.session() as session, session.begin():
            yield session
