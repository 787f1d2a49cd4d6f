"""Cache key schema for crudapp.

Record key format: {user_id}#{post_id}

Remote caches that share a keyspace with other applications prefix the
record key with a namespace: {prefix}:{user_id}#{post_id}

Caches with restricted key alphabets (memcached) use a digest of the record
key instead: {prefix}:{sha256 hex}
"""

from __future__ import annotations

import hashlib


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    PREFIX = "crudapp"
    SEPARATOR = "#"

    @classmethod
    def record(cls, user_id: str, post_id: str) -> str:
        """Key for a single cached record."""
        return f"{user_id}{cls.SEPARATOR}{post_id}"

    @classmethod
    def namespaced(cls, user_id: str, post_id: str, prefix: str | None = None) -> str:
        """Record key qualified with a namespace prefix."""
        return f"{prefix or cls.PREFIX}:{cls.record(user_id, post_id)}"

    @classmethod
    def hashed(cls, user_id: str, post_id: str, prefix: str | None = None) -> str:
        """Fixed-length ASCII key for caches that reject arbitrary bytes."""
        digest = hashlib.sha256(cls.record(user_id, post_id).encode("utf-8")).hexdigest()
        return f"{prefix or cls.PREFIX}:{digest}"
