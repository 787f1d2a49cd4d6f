"""Redis cache implementation for crudapp.

Caches record JSON under ``crudapp:{user_id}#{post_id}`` with a TTL, so
entries that miss an invalidation still expire. Uses the redis-py async
client for connection pooling.

Redis being down must never fail a request: every operation logs the
error and degrades to a miss or a no-op.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import orjson
from opentelemetry.trace import NoOpTracer, Tracer
from pydantic import ValidationError
from redis.exceptions import RedisError

from crudapp.cache.base import Cache
from crudapp.cache.keys import CacheKeys
from crudapp.core.record import Record

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Default TTL (1 hour)
DEFAULT_TTL = 3600


class RedisCache(Cache):
    """Record cache stored in Redis."""

    def __init__(
        self,
        client: Redis,
        ttl: int = DEFAULT_TTL,
        prefix: str = CacheKeys.PREFIX,
        tracer: Tracer | None = None,
    ):
        self.client = client
        self.ttl = ttl
        self.prefix = prefix
        self.tracer = tracer or NoOpTracer()

    def _key(self, user_id: str, post_id: str) -> str:
        return CacheKeys.namespaced(user_id, post_id, self.prefix)

    async def get(self, user_id: str, post_id: str) -> Record | None:
        with self.tracer.start_as_current_span("redis_cache.get"):
            key = self._key(user_id, post_id)
            try:
                raw = await self.client.get(key)
            except RedisError as e:
                logger.warning(f"Redis cache get failed for {key}: {e}")
                return None
            if raw is None:
                return None
            try:
                return Record.from_bytes(raw)
            except (orjson.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Discarding undecodable cache entry {key}: {e}")
                return None

    async def add(self, user_id: str, post_id: str, record: Record) -> None:
        with self.tracer.start_as_current_span("redis_cache.add"):
            key = self._key(user_id, post_id)
            try:
                await self.client.setex(key, self.ttl, record.to_bytes())
            except RedisError as e:
                logger.warning(f"Redis cache add failed for {key}: {e}")

    async def remove(self, user_id: str, post_id: str) -> None:
        with self.tracer.start_as_current_span("redis_cache.remove"):
            key = self._key(user_id, post_id)
            try:
                await self.client.delete(key)
            except RedisError as e:
                logger.warning(f"Redis cache remove failed for {key}: {e}")

    async def close(self) -> None:
        await self.client.aclose()
