"""Post storage for crudapp.

Provides one persistence contract with interchangeable backends:
- In-memory map (default, development and tests)
- Relational table via SQLAlchemy (PostgreSQL, SQLite)
- MongoDB document collection
- Redis hashes
- DynamoDB table

Backends are selected at startup by ``crudapp.storage.factory``; driver
modules are only imported when their backend is chosen. ``CachingStorage``
fronts any backend with a best-effort cache.
"""

from crudapp.storage.base import RecordIterator, Storage
from crudapp.storage.caching import CachingStorage
from crudapp.storage.errors import (
    BackendError,
    PostNotFoundError,
    StorageError,
    UndefinedCacheTypeError,
    UndefinedStorageTypeError,
)
from crudapp.storage.memory import MemoryStorage

__all__ = [
    "BackendError",
    "CachingStorage",
    "MemoryStorage",
    "PostNotFoundError",
    "RecordIterator",
    "Storage",
    "StorageError",
    "UndefinedCacheTypeError",
    "UndefinedStorageTypeError",
]
