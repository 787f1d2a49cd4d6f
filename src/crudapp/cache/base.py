"""Base cache interface.

A cache holds copies of single records keyed by (user_id, post_id). It is
an optimization only: implementations never raise from ``get``, ``add`` or
``remove``. Failures are logged and treated as a miss or a no-op.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from crudapp.core.record import Record


class Cache(ABC):
    """Contract for record caches."""

    @abstractmethod
    async def get(self, user_id: str, post_id: str) -> Record | None:
        """Look up a record. Returns None on a miss."""
        ...

    @abstractmethod
    async def add(self, user_id: str, post_id: str, record: Record) -> None:
        """Store or overwrite an entry. Bounded caches may evict another one."""
        ...

    @abstractmethod
    async def remove(self, user_id: str, post_id: str) -> None:
        """Drop an entry. Removing an absent entry is a no-op."""
        ...

    async def close(self) -> None:
        """Release cache connections. No-op by default."""
        return None


class NoopCache(Cache):
    """Cache that stores nothing: every get misses."""

    async def get(self, user_id: str, post_id: str) -> Record | None:
        return None

    async def add(self, user_id: str, post_id: str, record: Record) -> None:
        pass

    async def remove(self, user_id: str, post_id: str) -> None:
        pass
