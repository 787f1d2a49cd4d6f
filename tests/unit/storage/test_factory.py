"""Tests for storage and cache selection from settings."""

from __future__ import annotations

import pytest

from crudapp.cache.base import NoopCache
from crudapp.cache.factory import create_cache
from crudapp.cache.memcached import MemcachedCache
from crudapp.cache.memory import MemoryCache
from crudapp.cache.redis import RedisCache
from crudapp.config import Settings
from crudapp.storage.caching import CachingStorage
from crudapp.storage.dynamodb import DynamoStorage
from crudapp.storage.errors import UndefinedCacheTypeError, UndefinedStorageTypeError
from crudapp.storage.factory import create_caching_storage, create_storage
from crudapp.storage.memory import MemoryStorage
from crudapp.storage.mongodb import MongoStorage
from crudapp.storage.redis import RedisStorage
from crudapp.storage.sql import SqlStorage


class TestCreateStorage:
    """Tests for create_storage."""

    def test_memory_is_default(self) -> None:
        assert isinstance(create_storage(Settings()), MemoryStorage)

    @pytest.mark.parametrize("storage_type", ["postgres", "sql", "SQL"])
    def test_relational(self, storage_type: str) -> None:
        config = Settings(storage_type=storage_type, database_url="sqlite+aiosqlite:///posts.db")

        storage = create_storage(config)

        assert isinstance(storage, SqlStorage)
        assert storage.engine.url.database == "posts.db"

    def test_mongodb(self) -> None:
        storage = create_storage(
            Settings(storage_type="mongodb", mongodb_database="blog", mongodb_collection="entries")
        )

        assert isinstance(storage, MongoStorage)
        assert storage.collection.name == "entries"
        assert storage.collection.database.name == "blog"

    def test_redis(self) -> None:
        assert isinstance(create_storage(Settings(storage_type="redis")), RedisStorage)

    def test_dynamodb(self) -> None:
        storage = create_storage(
            Settings(
                storage_type="dynamodb",
                dynamodb_table="Entries",
                dynamodb_region="eu-central-1",
                dynamodb_endpoint_url="http://localhost:8000",
            )
        )

        assert isinstance(storage, DynamoStorage)
        assert storage.table_name == "Entries"
        assert storage.region_name == "eu-central-1"
        assert storage.endpoint_url == "http://localhost:8000"

    def test_unknown_type(self) -> None:
        with pytest.raises(UndefinedStorageTypeError) as exc_info:
            create_storage(Settings(storage_type="cassandra"))

        assert isinstance(exc_info.value, ValueError)
        assert exc_info.value.storage_type == "cassandra"


class TestCreateCache:
    """Tests for create_cache."""

    @pytest.mark.parametrize("cache_type", ["noop", "none", ""])
    def test_noop(self, cache_type: str) -> None:
        assert isinstance(create_cache(Settings(cache_type=cache_type)), NoopCache)

    def test_memory(self) -> None:
        cache = create_cache(Settings(cache_type="memory", cache_size=42))

        assert isinstance(cache, MemoryCache)
        assert cache.max_size == 42

    def test_redis(self) -> None:
        cache = create_cache(Settings(cache_type="redis", cache_ttl=60))

        assert isinstance(cache, RedisCache)
        assert cache.ttl == 60

    def test_memcached(self) -> None:
        cache = create_cache(
            Settings(cache_type="memcached", cache_memcached_servers="mc1:11211,mc2", cache_ttl=60)
        )

        assert isinstance(cache, MemcachedCache)
        assert cache.ttl == 60

    def test_unknown_type(self) -> None:
        with pytest.raises(UndefinedCacheTypeError):
            create_cache(Settings(cache_type="hazelcast"))


def test_caching_storage_wires_backend_and_cache() -> None:
    storage = create_caching_storage(Settings(storage_type="memory", cache_type="noop"))

    assert isinstance(storage, CachingStorage)
    assert isinstance(storage.storage, MemoryStorage)
    assert isinstance(storage.cache, NoopCache)


def test_environment_selects_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORAGE_TYPE", "redis")
    monkeypatch.setenv("CACHE_TYPE", "noop")

    storage = create_caching_storage(Settings())

    assert isinstance(storage.storage, RedisStorage)
    assert isinstance(storage.cache, NoopCache)
