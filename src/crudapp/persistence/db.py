"""Async database engine factory.

Provides relational connectivity using the SQLAlchemy 2.0 asyncio
extension. PostgreSQL via asyncpg in production; any async dialect
(e.g. ``sqlite+aiosqlite``) works for development and tests.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from crudapp.config import Settings, settings
from crudapp.persistence.tables import Base


def create_engine(config: Settings | None = None, url: str | None = None) -> AsyncEngine:
    """Create an async engine with pool settings from configuration.

    SQLite does not support the queue pool options, so they are only
    applied to server databases.
    """
    config = config or settings
    url = url or config.database_url

    options: dict[str, Any] = {"echo": False}
    if not make_url(url).get_backend_name().startswith("sqlite"):
        options.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_timeout=config.db_pool_timeout,
            pool_recycle=config.db_pool_recycle,  # Recycle stale connections
            pool_pre_ping=True,  # Verify connection health
        )
    return create_async_engine(url, **options)


async def init_db(engine: AsyncEngine) -> None:
    """Create tables if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def health_check(engine: AsyncEngine) -> bool:
    """Check database connectivity."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
