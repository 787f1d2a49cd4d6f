"""In-memory storage backend.

Keeps posts in a nested dict ``{user_id: {post_id: Record}}``.

This provides:
- Zero-dependency deployment for development and tests
- The reference behavior the other backends are checked against

Nothing survives a restart.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator

from opentelemetry.trace import NoOpTracer, Tracer

from crudapp.core.record import Record, next_update_time
from crudapp.storage.base import RecordIterator, Storage
from crudapp.storage.errors import PostNotFoundError


class MemoryRecordIterator(RecordIterator):
    """Iterates over a snapshot of one user's records."""

    def __init__(self, records: list[Record]):
        self._records: Iterator[Record] = iter(records)
        self._current: Record | None = None

    async def next(self) -> bool:
        self._current = None if self._closed else next(self._records, None)
        return self._current is not None

    def get(self) -> Record:
        if self._current is None:
            raise RuntimeError("get() called without a successful next()")
        return self._current

    async def _release(self) -> None:
        self._records = iter(())
        self._current = None


class MemoryStorage(Storage):
    """Dict-backed storage backend."""

    def __init__(self, tracer: Tracer | None = None):
        self.tracer = tracer or NoOpTracer()
        self._store: dict[str, dict[str, Record]] = {}
        # Guards the dict when the storage is shared across threads
        self._lock = threading.Lock()

    async def create(self, user_id: str, data: str) -> Record:
        with self.tracer.start_as_current_span("memory.create"):
            record = Record.new(user_id, data)
            with self._lock:
                self._store.setdefault(user_id, {})[record.post_id] = record
            return record

    async def read(self, user_id: str, post_id: str) -> Record:
        with self.tracer.start_as_current_span("memory.read"):
            with self._lock:
                record = self._store.get(user_id, {}).get(post_id)
            if record is None:
                raise PostNotFoundError(user_id, post_id)
            return record

    async def read_all(self, user_id: str) -> RecordIterator:
        with self.tracer.start_as_current_span("memory.read_all"):
            with self._lock:
                records = list(self._store.get(user_id, {}).values())
            return MemoryRecordIterator(records)

    async def update(self, user_id: str, post_id: str, data: str) -> Record:
        with self.tracer.start_as_current_span("memory.update"):
            with self._lock:
                posts = self._store.get(user_id, {})
                current = posts.get(post_id)
                if current is None:
                    raise PostNotFoundError(user_id, post_id)
                record = current.with_data(data, next_update_time(current.updated_at))
                posts[post_id] = record
            return record

    async def delete(self, user_id: str, post_id: str) -> None:
        with self.tracer.start_as_current_span("memory.delete"):
            with self._lock:
                posts = self._store.get(user_id)
                if posts is not None:
                    posts.pop(post_id, None)
                    if not posts:
                        del self._store[user_id]
