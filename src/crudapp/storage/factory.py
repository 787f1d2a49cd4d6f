"""Storage factory for crudapp.

The backend is chosen once, at startup, from ``settings.storage_type``.
"""

from __future__ import annotations

from opentelemetry.trace import Tracer

from crudapp.cache.factory import create_cache
from crudapp.config import Settings, settings
from crudapp.observability.metrics import StorageMetrics
from crudapp.storage.base import Storage
from crudapp.storage.caching import CachingStorage
from crudapp.storage.errors import UndefinedStorageTypeError
from crudapp.storage.memory import MemoryStorage


def create_storage(config: Settings | None = None, tracer: Tracer | None = None) -> Storage:
    """Build the storage backend named by ``config.storage_type``.

    Driver modules are imported lazily so a deployment only needs the
    client library of the backend it actually uses.
    """
    config = config or settings

    storage_type = config.storage_type.lower()
    if storage_type == "memory":
        return MemoryStorage(tracer=tracer)
    if storage_type in {"postgres", "sql"}:
        from crudapp.persistence.db import create_engine
        from crudapp.storage.sql import SqlStorage

        return SqlStorage(create_engine(config), tracer=tracer)
    if storage_type == "mongodb":
        from crudapp.storage.mongodb import MongoStorage, create_collection

        collection = create_collection(
            config.mongodb_url, config.mongodb_database, config.mongodb_collection
        )
        return MongoStorage(collection, tracer=tracer)
    if storage_type == "redis":
        from crudapp.storage.redis import RedisStorage, create_client

        return RedisStorage(create_client(config.redis_url), tracer=tracer)
    if storage_type == "dynamodb":
        from crudapp.storage.dynamodb import DynamoStorage

        return DynamoStorage(
            table_name=config.dynamodb_table,
            region_name=config.dynamodb_region,
            endpoint_url=config.dynamodb_endpoint_url,
            tracer=tracer,
        )
    raise UndefinedStorageTypeError(config.storage_type)


def create_caching_storage(
    config: Settings | None = None,
    tracer: Tracer | None = None,
    metrics: StorageMetrics | None = None,
) -> CachingStorage:
    """Wire the configured backend behind the configured cache."""
    config = config or settings
    return CachingStorage(
        create_storage(config, tracer),
        create_cache(config, tracer),
        tracer=tracer,
        metrics=metrics,
    )
