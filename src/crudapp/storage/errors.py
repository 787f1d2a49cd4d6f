"""Storage error taxonomy.

- PostNotFoundError: the requested (user_id, post_id) does not exist.
  Raised by ``read`` and ``update`` only; ``delete`` is idempotent.
- BackendError: any I/O, network or decode failure from a concrete backend.
  The driver exception is chained as ``__cause__``.
"""

from __future__ import annotations


class StorageError(Exception):
    """Base class for storage errors."""


class PostNotFoundError(StorageError):
    """The post does not exist for this user."""

    def __init__(self, user_id: str, post_id: str):
        self.user_id = user_id
        self.post_id = post_id
        super().__init__(f"post '{post_id}' does not exist")


class BackendError(StorageError):
    """A backend operation failed."""


class UndefinedStorageTypeError(StorageError, ValueError):
    """Configuration names a storage backend that does not exist."""

    def __init__(self, storage_type: str):
        self.storage_type = storage_type
        super().__init__(f"storage type '{storage_type}' is undefined")


class UndefinedCacheTypeError(StorageError, ValueError):
    """Configuration names a cache backend that does not exist."""

    def __init__(self, cache_type: str):
        self.cache_type = cache_type
        super().__init__(f"cache type '{cache_type}' is undefined")
