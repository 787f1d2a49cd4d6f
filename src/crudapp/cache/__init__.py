"""Cache layer for crudapp.

Best-effort record caches fronting a storage backend:
- NoopCache: caching disabled, every lookup misses
- MemoryCache: bounded in-process LRU
- RedisCache: shared remote cache with TTL expiry
- MemcachedCache: memcached servers, keys hashed over the server list
"""

from crudapp.cache.base import Cache, NoopCache
from crudapp.cache.factory import create_cache
from crudapp.cache.keys import CacheKeys
from crudapp.cache.memcached import MemcachedCache
from crudapp.cache.memory import MemoryCache
from crudapp.cache.redis import RedisCache

__all__ = [
    "Cache",
    "CacheKeys",
    "MemcachedCache",
    "MemoryCache",
    "NoopCache",
    "RedisCache",
    "create_cache",
]
