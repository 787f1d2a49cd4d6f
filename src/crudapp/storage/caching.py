"""Read-through / write-invalidate caching in front of a storage backend.

CachingStorage wraps one Storage and one Cache and is itself a Storage:

- create: write the backend, then add the new record to the cache
- read:   serve from cache on a hit; on a miss read the backend and fill
          the cache (NotFound is never cached)
- read_all: always the backend; the cache only holds single records
- update: write the backend first, then remove the cache entry, so a failed
          write never leaves a value in the cache that storage does not hold
- delete: remove the cache entry, then delete from the backend

Backend errors propagate unchanged. Cache errors are logged and absorbed:
an unavailable cache degrades to direct backend access, never to a failed
request. The coordinator takes no locks, so a concurrent read may still
observe an entry that an in-flight update is about to remove.
"""

from __future__ import annotations

import logging

from opentelemetry.trace import NoOpTracer, Tracer

from crudapp.cache.base import Cache
from crudapp.core.record import Record
from crudapp.observability.metrics import StorageMetrics
from crudapp.storage.base import RecordIterator, Storage
from crudapp.storage.errors import PostNotFoundError

logger = logging.getLogger(__name__)


class CachingStorage(Storage):
    """Storage decorator that keeps a record cache consistent with writes."""

    def __init__(
        self,
        storage: Storage,
        cache: Cache,
        tracer: Tracer | None = None,
        metrics: StorageMetrics | None = None,
    ):
        self.storage = storage
        self.cache = cache
        self.tracer = tracer or NoOpTracer()
        self.metrics = metrics

    # -------------------------------------------------------------------------
    # Best-effort cache access
    # -------------------------------------------------------------------------

    async def _cache_get(self, user_id: str, post_id: str) -> Record | None:
        try:
            record = await self.cache.get(user_id, post_id)
        except Exception:
            logger.warning("cache get failed", exc_info=True, extra={"post_id": post_id})
            self._count_cache_error("get")
            return None
        if self.metrics is not None:
            if record is None:
                self.metrics.cache_miss()
            else:
                self.metrics.cache_hit()
        return record

    async def _cache_add(self, record: Record) -> None:
        try:
            await self.cache.add(record.user_id, record.post_id, record)
        except Exception:
            logger.warning("cache add failed", exc_info=True, extra={"post_id": record.post_id})
            self._count_cache_error("add")

    async def _cache_remove(self, user_id: str, post_id: str) -> None:
        try:
            await self.cache.remove(user_id, post_id)
        except Exception:
            logger.warning("cache remove failed", exc_info=True, extra={"post_id": post_id})
            self._count_cache_error("remove")

    def _count_cache_error(self, operation: str) -> None:
        if self.metrics is not None:
            self.metrics.cache_error(operation)

    def _count(self, operation: str, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.storage_operation(operation, outcome)

    # -------------------------------------------------------------------------
    # Storage contract
    # -------------------------------------------------------------------------

    async def create(self, user_id: str, data: str) -> Record:
        with self.tracer.start_as_current_span("caching.create"):
            try:
                record = await self.storage.create(user_id, data)
            except Exception:
                self._count("create", "error")
                raise
            self._count("create", "ok")
            await self._cache_add(record)
            return record

    async def read(self, user_id: str, post_id: str) -> Record:
        with self.tracer.start_as_current_span("caching.read") as span:
            cached = await self._cache_get(user_id, post_id)
            # Flat cache keys can collide when an ID contains the separator
            if cached is not None and (cached.user_id, cached.post_id) != (user_id, post_id):
                logger.warning("cache entry belongs to another post", extra={"post_id": post_id})
                cached = None
            span.set_attribute("cache.hit", cached is not None)
            if cached is not None:
                return cached

            try:
                record = await self.storage.read(user_id, post_id)
            except PostNotFoundError:
                self._count("read", "not_found")
                raise
            except Exception:
                self._count("read", "error")
                raise
            self._count("read", "ok")
            await self._cache_add(record)
            return record

    async def read_all(self, user_id: str) -> RecordIterator:
        with self.tracer.start_as_current_span("caching.read_all"):
            try:
                records = await self.storage.read_all(user_id)
            except Exception:
                self._count("read_all", "error")
                raise
            self._count("read_all", "ok")
            return records

    async def update(self, user_id: str, post_id: str, data: str) -> Record:
        with self.tracer.start_as_current_span("caching.update"):
            try:
                record = await self.storage.update(user_id, post_id, data)
            except PostNotFoundError:
                self._count("update", "not_found")
                raise
            except Exception:
                self._count("update", "error")
                raise
            self._count("update", "ok")
            await self._cache_remove(user_id, post_id)
            return record

    async def delete(self, user_id: str, post_id: str) -> None:
        with self.tracer.start_as_current_span("caching.delete"):
            await self._cache_remove(user_id, post_id)
            try:
                await self.storage.delete(user_id, post_id)
            except Exception:
                self._count("delete", "error")
                raise
            self._count("delete", "ok")

    async def setup(self) -> None:
        await self.storage.setup()

    async def health_check(self) -> bool:
        return await self.storage.health_check()

    async def close(self) -> None:
        try:
            await self.cache.close()
        finally:
            await self.storage.close()
