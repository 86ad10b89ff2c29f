"""Engine factory for the status configuration database.

SQLite (aiosqlite) is the default; PostgreSQL (asyncpg) is available via the
``postgres`` extra.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from status_notify.config.settings import DatabaseEngine

if TYPE_CHECKING:
    from status_notify.config.settings import DatabaseConfig


def is_memory_dsn(dsn: str) -> bool:
    """True for SQLite DSNs that name an in-memory database."""
    if not dsn.startswith("sqlite"):
        return False
    return ":memory:" in dsn or dsn.split("://", 1)[-1] in ("", "/")


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create the async engine described by *config*.

    In-memory SQLite databases are pinned to one connection, otherwise each
    pooled connection would see its own empty database.
    """
    kwargs: dict[str, Any] = {"echo": config.debug_sql}

    if config.engine == DatabaseEngine.POSTGRESQL:
        kwargs["pool_size"] = config.max_idle_connections
        kwargs["max_overflow"] = max(config.max_open_connections - config.max_idle_connections, 0)
        kwargs["pool_pre_ping"] = True
    elif is_memory_dsn(config.dsn):
        kwargs["poolclass"] = StaticPool

    return create_async_engine(config.dsn, **kwargs)
