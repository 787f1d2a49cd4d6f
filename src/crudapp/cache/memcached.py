"""Memcached cache implementation for crudapp.

Caches record JSON in one or more memcached servers. pymemcache's
``HashClient`` spreads keys over the configured servers; its calls are
blocking, so each one runs in a worker thread via ``asyncio.to_thread``.

Memcached keys are limited to 250 printable ASCII bytes, while user and post
IDs are arbitrary strings, so record keys are hashed (see
``CacheKeys.hashed``).

As with RedisCache, a failing server never fails a request: errors are
logged and degrade to a miss or a no-op.
"""

from __future__ import annotations

import asyncio
import logging

import orjson
from opentelemetry.trace import NoOpTracer, Tracer
from pydantic import ValidationError
from pymemcache.client.hash import HashClient
from pymemcache.exceptions import MemcacheError

from crudapp.cache.base import Cache
from crudapp.cache.keys import CacheKeys
from crudapp.core.record import Record

logger = logging.getLogger(__name__)

DEFAULT_PORT = 11211


def parse_servers(servers: str) -> list[tuple[str, int]]:
    """Parse ``"host[:port],host[:port]"`` into (host, port) pairs."""
    parsed = []
    for server in servers.split(","):
        server = server.strip()
        if not server:
            continue
        host, _, port = server.rpartition(":")
        if not host:
            host, port = port, ""
        parsed.append((host, int(port) if port else DEFAULT_PORT))
    if not parsed:
        raise ValueError("at least one memcached server is required")
    return parsed


def create_client(servers: str, timeout: float = 1.0) -> HashClient:
    """Create a memcached client over a comma-separated server list."""
    return HashClient(parse_servers(servers), connect_timeout=timeout, timeout=timeout)


class MemcachedCache(Cache):
    """Record cache stored in memcached."""

    def __init__(
        self,
        client: HashClient,
        ttl: int = 0,
        prefix: str = CacheKeys.PREFIX,
        tracer: Tracer | None = None,
    ):
        self.client = client
        # 0 means entries never expire
        self.ttl = ttl
        self.prefix = prefix
        self.tracer = tracer or NoOpTracer()

    def _key(self, user_id: str, post_id: str) -> str:
        return CacheKeys.hashed(user_id, post_id, self.prefix)

    async def get(self, user_id: str, post_id: str) -> Record | None:
        with self.tracer.start_as_current_span("memcached.get"):
            key = self._key(user_id, post_id)
            try:
                raw = await asyncio.to_thread(self.client.get, key)
            except (MemcacheError, OSError) as e:
                logger.warning(f"Memcached get failed for {key}: {e}")
                return None
            if raw is None:
                return None
            try:
                return Record.from_bytes(raw)
            except (orjson.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Discarding undecodable cache entry {key}: {e}")
                return None

    async def add(self, user_id: str, post_id: str, record: Record) -> None:
        with self.tracer.start_as_current_span("memcached.add"):
            key = self._key(user_id, post_id)
            try:
                await asyncio.to_thread(self.client.set, key, record.to_bytes(), expire=self.ttl)
            except (MemcacheError, OSError) as e:
                logger.warning(f"Memcached add failed for {key}: {e}")

    async def remove(self, user_id: str, post_id: str) -> None:
        with self.tracer.start_as_current_span("memcached.remove"):
            key = self._key(user_id, post_id)
            try:
                await asyncio.to_thread(self.client.delete, key)
            except (MemcacheError, OSError) as e:
                logger.warning(f"Memcached remove failed for {key}: {e}")

    async def close(self) -> None:
        await asyncio.to_thread(self.client.close)
