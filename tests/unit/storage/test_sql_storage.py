"""Unit tests for the SQLAlchemy storage backend (on SQLite)."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import inspect

from crudapp.persistence.db import create_engine
from crudapp.storage.errors import BackendError
from crudapp.storage.sql import SqlStorage


@pytest.mark.asyncio
async def test_setup_creates_post_table(sql_storage: SqlStorage) -> None:
    async with sql_storage.engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        columns = await conn.run_sync(
            lambda sync_conn: [c["name"] for c in inspect(sync_conn).get_columns("post")]
        )

    assert "post" in tables
    assert columns == ["user_id", "post_id", "data", "created_at", "updated_at"]


@pytest.mark.asyncio
async def test_setup_is_idempotent(sql_storage: SqlStorage) -> None:
    record = await sql_storage.create("u1", "hello")

    await sql_storage.setup()

    assert await sql_storage.read("u1", record.post_id) == record


@pytest.mark.asyncio
async def test_records_survive_reconnect(tmp_path: Path) -> None:
    url = f"sqlite+aiosqlite:///{tmp_path / 'posts.db'}"
    first = SqlStorage(create_engine(url=url))
    await first.setup()
    record = await first.create("u1", "durable")
    await first.close()

    second = SqlStorage(create_engine(url=url))
    try:
        loaded = await second.read("u1", record.post_id)
    finally:
        await second.close()

    assert loaded == record
    assert loaded.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_driver_errors_become_backend_errors(tmp_path: Path) -> None:
    """Operations on a database without the post table fail as BackendError."""
    storage = SqlStorage(create_engine(url=f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}"))
    try:
        with pytest.raises(BackendError) as exc_info:
            await storage.create("u1", "hello")
        assert exc_info.value.__cause__ is not None

        with pytest.raises(BackendError):
            await storage.read("u1", "p1")
        with pytest.raises(BackendError):
            await storage.read_all("u1")
    finally:
        await storage.close()
