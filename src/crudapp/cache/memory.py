"""In-process LRU cache.

Bounded cache backed by ``cachetools.LRUCache``: once ``max_size`` entries
are held, adding a new one evicts the least recently used. Entries are keyed
by the (user_id, post_id) pair itself, so no key string has to be built.
"""

from __future__ import annotations

import logging
import threading

from cachetools import LRUCache
from opentelemetry.trace import NoOpTracer, Tracer

from crudapp.cache.base import Cache
from crudapp.core.record import Record

logger = logging.getLogger(__name__)


class MemoryCache(Cache):
    """Least-recently-used record cache held in process memory."""

    def __init__(self, max_size: int = 10000, tracer: Tracer | None = None):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.tracer = tracer or NoOpTracer()
        self._store: LRUCache[tuple[str, str], Record] = LRUCache(maxsize=max_size)
        # LRUCache reorders on every read, so lookups need the lock too
        self._lock = threading.Lock()

    @property
    def max_size(self) -> int:
        return int(self._store.maxsize)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    async def get(self, user_id: str, post_id: str) -> Record | None:
        with self.tracer.start_as_current_span("memory_cache.get"):
            key = (user_id, post_id)
            with self._lock:
                record = self._store.get(key)
            logger.debug(
                "cache_hit" if record is not None else "cache_miss", extra={"post_id": post_id}
            )
            return record

    async def add(self, user_id: str, post_id: str, record: Record) -> None:
        with self.tracer.start_as_current_span("memory_cache.add"):
            with self._lock:
                self._store[(user_id, post_id)] = record

    async def remove(self, user_id: str, post_id: str) -> None:
        with self.tracer.start_as_current_span("memory_cache.remove"):
            with self._lock:
                self._store.pop((user_id, post_id), None)
