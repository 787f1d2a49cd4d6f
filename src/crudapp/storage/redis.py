"""Redis key-value storage backend.

Layout: one hash per user, keyed by the user ID; each field is a post ID
and each value the record's canonical JSON bytes.

``read_all`` walks the hash with HSCAN, so large users are fetched in
batches rather than with a single HGETALL.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable
from typing import TYPE_CHECKING, cast

import orjson
from opentelemetry.trace import NoOpTracer, Tracer
from pydantic import ValidationError
from redis.exceptions import RedisError, WatchError

from crudapp.core.record import Record, next_update_time
from crudapp.storage.base import RecordIterator, Storage
from crudapp.storage.errors import BackendError, PostNotFoundError

if TYPE_CHECKING:
    from redis.asyncio import Redis


def create_client(url: str) -> Redis:
    """Create a pooled async Redis client storing raw bytes."""
    import redis.asyncio as redis

    return redis.from_url(url, decode_responses=False)  # type: ignore[no-untyped-call]


def _decode(raw: bytes | str) -> Record:
    try:
        return Record.from_bytes(raw)
    except (orjson.JSONDecodeError, ValidationError) as exc:
        raise BackendError("error unmarshalling record") from exc


class RedisRecordIterator(RecordIterator):
    """Iterates over an HSCAN of one user's hash."""

    def __init__(self, scan: AsyncIterator[tuple[bytes, bytes]]):
        self._scan = scan
        self._raw: bytes | None = None

    async def next(self) -> bool:
        if self._closed:
            return False
        try:
            _, self._raw = await anext(self._scan)
        except StopAsyncIteration:
            self._raw = None
        except RedisError as exc:
            raise BackendError("error reading all") from exc
        return self._raw is not None

    def get(self) -> Record:
        if self._raw is None:
            raise RuntimeError("get() called without a successful next()")
        return _decode(self._raw)

    async def _release(self) -> None:
        self._raw = None
        aclose = getattr(self._scan, "aclose", None)
        if aclose is not None:
            await aclose()


class RedisStorage(Storage):
    """Redis hash-backed storage backend."""

    def __init__(self, client: Redis, tracer: Tracer | None = None):
        self.client = client
        self.tracer = tracer or NoOpTracer()

    async def close(self) -> None:
        await self.client.aclose()

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except Exception:
            return False

    async def create(self, user_id: str, data: str) -> Record:
        with self.tracer.start_as_current_span("redis.create"):
            record = Record.new(user_id, data)
            try:
                await self.client.hset(user_id, record.post_id, record.to_bytes())
            except RedisError as exc:
                raise BackendError("error creating") from exc
            return record

    async def read(self, user_id: str, post_id: str) -> Record:
        with self.tracer.start_as_current_span("redis.read"):
            try:
                raw = await self.client.hget(user_id, post_id)
            except RedisError as exc:
                raise BackendError("error reading") from exc
            if raw is None:
                raise PostNotFoundError(user_id, post_id)
            return _decode(raw)

    async def read_all(self, user_id: str) -> RecordIterator:
        with self.tracer.start_as_current_span("redis.read_all"):
            return RedisRecordIterator(self.client.hscan_iter(user_id))

    async def update(self, user_id: str, post_id: str, data: str) -> Record:
        """Update inside WATCH/MULTI so a concurrent delete is not undone."""
        with self.tracer.start_as_current_span("redis.update"):
            try:
                async with self.client.pipeline(transaction=True) as pipe:
                    await pipe.watch(user_id)
                    raw = await pipe.hget(user_id, post_id)
                    if raw is None:
                        raise PostNotFoundError(user_id, post_id)
                    current = _decode(raw)
                    record = current.with_data(data, next_update_time(current.updated_at))
                    pipe.multi()
                    pipe.hset(user_id, post_id, record.to_bytes())
                    await pipe.execute()
            except WatchError as exc:
                raise BackendError("error updating: concurrent modification") from exc
            except RedisError as exc:
                raise BackendError("error updating") from exc
            return record

    async def delete(self, user_id: str, post_id: str) -> None:
        with self.tracer.start_as_current_span("redis.delete"):
            try:
                await self.client.hdel(user_id, post_id)
            except RedisError as exc:
                raise BackendError("error deleting") from exc
