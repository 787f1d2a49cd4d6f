"""Backend fixtures shared by the storage tests.

``storage`` is parametrized over every backend so contract tests run once
per implementation. Remote backends run against the in-process fakes in
``tests.fakes``; the relational backend runs on a SQLite file.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio

from crudapp.cache.memory import MemoryCache
from crudapp.persistence.db import create_engine
from crudapp.storage.base import Storage
from crudapp.storage.caching import CachingStorage
from crudapp.storage.dynamodb import DynamoStorage
from crudapp.storage.memory import MemoryStorage
from crudapp.storage.mongodb import MongoStorage
from crudapp.storage.redis import RedisStorage
from crudapp.storage.sql import SqlStorage
from tests.fakes import FakeDynamoClient, FakeDynamoClientContext, FakeMongoCollection, FakeRedis

BACKENDS = ["memory", "sql", "mongodb", "redis", "dynamodb", "caching"]


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fake_collection() -> FakeMongoCollection:
    return FakeMongoCollection()


@pytest.fixture
def fake_dynamo() -> FakeDynamoClient:
    return FakeDynamoClient(page_size=2)


@pytest.fixture
def dynamo_storage(
    monkeypatch: pytest.MonkeyPatch, fake_dynamo: FakeDynamoClient
) -> DynamoStorage:
    storage = DynamoStorage(table_name="Posts", endpoint_url="http://localhost:8000")
    monkeypatch.setattr(storage, "_client", lambda: FakeDynamoClientContext(fake_dynamo))
    return storage


@pytest_asyncio.fixture
async def sql_storage(tmp_path: Path) -> AsyncIterator[SqlStorage]:
    engine = create_engine(url=f"sqlite+aiosqlite:///{tmp_path / 'posts.db'}")
    storage = SqlStorage(engine)
    await storage.setup()
    yield storage
    await storage.close()


@pytest_asyncio.fixture(params=BACKENDS)
async def storage(
    request: pytest.FixtureRequest,
    tmp_path: Path,
    fake_redis: FakeRedis,
    fake_collection: FakeMongoCollection,
    dynamo_storage: DynamoStorage,
) -> AsyncIterator[Storage]:
    """Every backend, set up and ready."""
    backend: Storage
    if request.param == "memory":
        backend = MemoryStorage()
    elif request.param == "sql":
        backend = SqlStorage(create_engine(url=f"sqlite+aiosqlite:///{tmp_path / 'posts.db'}"))
    elif request.param == "mongodb":
        backend = MongoStorage(fake_collection)
    elif request.param == "redis":
        backend = RedisStorage(fake_redis)
    elif request.param == "dynamodb":
        backend = dynamo_storage
    else:
        backend = CachingStorage(MemoryStorage(), MemoryCache(max_size=100))

    await backend.setup()
    yield backend
    await backend.close()
