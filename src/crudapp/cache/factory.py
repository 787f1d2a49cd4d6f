"""Cache factory for crudapp."""

from __future__ import annotations

from opentelemetry.trace import Tracer

from crudapp.cache.base import Cache, NoopCache
from crudapp.cache.memory import MemoryCache
from crudapp.cache.redis import RedisCache
from crudapp.config import Settings, settings
from crudapp.storage.errors import UndefinedCacheTypeError


def create_cache(config: Settings | None = None, tracer: Tracer | None = None) -> Cache:
    """Build the cache named by ``config.cache_type``."""
    config = config or settings

    cache_type = config.cache_type.lower()
    if cache_type in {"noop", "none", ""}:
        return NoopCache()
    if cache_type == "memory":
        return MemoryCache(max_size=config.cache_size, tracer=tracer)
    if cache_type == "redis":
        from crudapp.storage.redis import create_client

        return RedisCache(
            create_client(config.cache_redis_url), ttl=config.cache_ttl, tracer=tracer
        )
    if cache_type == "memcached":
        from crudapp.cache.memcached import MemcachedCache, create_client

        return MemcachedCache(
            create_client(config.cache_memcached_servers), ttl=config.cache_ttl, tracer=tracer
        )
    raise UndefinedCacheTypeError(config.cache_type)
