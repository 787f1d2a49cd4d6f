"""Relational storage backend.

Stores posts in the ``post`` table through the SQLAlchemy asyncio engine.
PostgreSQL (asyncpg) is the production target; SQLite (aiosqlite) is used
for development and tests.

``read_all`` streams rows through a server-side cursor, so listing a user
with many posts never materializes the full result set.
"""

from __future__ import annotations

import logging
from typing import Any

from opentelemetry.trace import NoOpTracer, Tracer
from pydantic import ValidationError
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncResult

from crudapp.core.record import Record, next_update_time
from crudapp.persistence.db import health_check as db_health_check
from crudapp.persistence.db import init_db
from crudapp.persistence.tables import PostTable
from crudapp.storage.base import RecordIterator, Storage
from crudapp.storage.errors import BackendError, PostNotFoundError

logger = logging.getLogger(__name__)

_COLUMNS = (
    PostTable.user_id,
    PostTable.post_id,
    PostTable.data,
    PostTable.created_at,
    PostTable.updated_at,
)


def _to_record(row: Any) -> Record:
    return Record(
        user_id=row.user_id,
        post_id=row.post_id,
        data=row.data,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlRecordIterator(RecordIterator):
    """Iterates over a streamed result, owning its connection."""

    def __init__(self, conn: AsyncConnection, result: AsyncResult[Any]):
        self._conn = conn
        self._result = result
        self._row: Any = None

    async def next(self) -> bool:
        if self._closed:
            return False
        try:
            self._row = await self._result.fetchone()
        except SQLAlchemyError as exc:
            raise BackendError("error reading all") from exc
        return self._row is not None

    def get(self) -> Record:
        if self._row is None:
            raise RuntimeError("get() called without a successful next()")
        try:
            return _to_record(self._row)
        except ValidationError as exc:
            raise BackendError("error decoding row") from exc

    async def _release(self) -> None:
        self._row = None
        try:
            await self._result.close()
        finally:
            await self._conn.close()


class SqlStorage(Storage):
    """SQLAlchemy-backed storage backend."""

    def __init__(self, engine: AsyncEngine, tracer: Tracer | None = None):
        self.engine = engine
        self.tracer = tracer or NoOpTracer()

    async def setup(self) -> None:
        """Create the post table if it does not exist."""
        try:
            await init_db(self.engine)
        except SQLAlchemyError as exc:
            raise BackendError("error initializing database") from exc
        logger.info("Post table ready")

    async def close(self) -> None:
        await self.engine.dispose()

    async def health_check(self) -> bool:
        return await db_health_check(self.engine)

    async def create(self, user_id: str, data: str) -> Record:
        with self.tracer.start_as_current_span("sql.create"):
            record = Record.new(user_id, data)
            stmt = insert(PostTable).values(
                user_id=record.user_id,
                post_id=record.post_id,
                data=record.data,
                created_at=record.created_at,
                updated_at=record.updated_at,
            )
            try:
                async with self.engine.begin() as conn:
                    await conn.execute(stmt)
            except SQLAlchemyError as exc:
                raise BackendError("error creating") from exc
            return record

    async def read(self, user_id: str, post_id: str) -> Record:
        with self.tracer.start_as_current_span("sql.read"):
            stmt = select(*_COLUMNS).where(
                PostTable.user_id == user_id, PostTable.post_id == post_id
            )
            try:
                async with self.engine.connect() as conn:
                    result = await conn.execute(stmt)
                    row = result.first()
            except SQLAlchemyError as exc:
                raise BackendError("error reading") from exc
            if row is None:
                raise PostNotFoundError(user_id, post_id)
            return _to_record(row)

    async def read_all(self, user_id: str) -> RecordIterator:
        with self.tracer.start_as_current_span("sql.read_all"):
            stmt = select(*_COLUMNS).where(PostTable.user_id == user_id)
            try:
                conn = await self.engine.connect()
            except SQLAlchemyError as exc:
                raise BackendError("error reading all") from exc
            try:
                result = await conn.stream(stmt)
            except SQLAlchemyError as exc:
                await conn.close()
                raise BackendError("error reading all") from exc
            return SqlRecordIterator(conn, result)

    async def update(self, user_id: str, post_id: str, data: str) -> Record:
        with self.tracer.start_as_current_span("sql.update"):
            query = (
                select(*_COLUMNS)
                .where(PostTable.user_id == user_id, PostTable.post_id == post_id)
                .with_for_update()
            )
            try:
                async with self.engine.begin() as conn:
                    row = (await conn.execute(query)).first()
                    if row is None:
                        raise PostNotFoundError(user_id, post_id)
                    record = _to_record(row)
                    record = record.with_data(data, next_update_time(record.updated_at))
                    await conn.execute(
                        update(PostTable)
                        .where(PostTable.user_id == user_id, PostTable.post_id == post_id)
                        .values(data=record.data, updated_at=record.updated_at)
                    )
            except SQLAlchemyError as exc:
                raise BackendError("error updating") from exc
            return record

    async def delete(self, user_id: str, post_id: str) -> None:
        with self.tracer.start_as_current_span("sql.delete"):
            stmt = delete(PostTable).where(
                PostTable.user_id == user_id, PostTable.post_id == post_id
            )
            try:
                async with self.engine.begin() as conn:
                    await conn.execute(stmt)
            except SQLAlchemyError as exc:
                raise BackendError("error deleting") from exc
