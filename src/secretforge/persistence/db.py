"""Engine construction for the record store.

PostgreSQL through asyncpg in deployment, SQLite through aiosqlite for
local runs and tests. Pool sizing only applies to server databases; an
in-memory SQLite database lives inside one connection, so every session
has to share it.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from secretforge.config import settings
from secretforge.persistence.tables import Base


def create_engine(url: str | None = None) -> AsyncEngine:
    """Build an engine for ``url``, defaulting to the configured database."""
    parsed = make_url(url or settings.database_url)

    if parsed.get_backend_name() == "sqlite":
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if parsed.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return create_async_engine(parsed, **options)

    return create_async_engine(
        parsed,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
    )


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions keep loaded rows usable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create the ``secrets`` table and its indexes if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
