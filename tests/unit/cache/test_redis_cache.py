"""Tests for the Redis record cache."""

from __future__ import annotations

import logging

import pytest

from crudapp.cache.redis import DEFAULT_TTL, RedisCache
from crudapp.core.record import Record
from tests.fakes import FakeRedis


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


class TestRedisCache:
    """Tests for get/add/remove against a fake client."""

    @pytest.mark.asyncio
    async def test_add_sets_namespaced_key_with_ttl(self, fake_redis: FakeRedis) -> None:
        cache = RedisCache(fake_redis, ttl=60)
        record = Record.new("u1", "hello")

        await cache.add("u1", record.post_id, record)

        key = f"crudapp:u1#{record.post_id}"
        assert fake_redis.values[key] == record.to_bytes()
        assert fake_redis.ttls[key] == 60

    @pytest.mark.asyncio
    async def test_round_trip(self, fake_redis: FakeRedis) -> None:
        cache = RedisCache(fake_redis)
        record = Record.new("u1", "hello")

        await cache.add("u1", record.post_id, record)

        assert await cache.get("u1", record.post_id) == record
        assert fake_redis.ttls[f"crudapp:u1#{record.post_id}"] == DEFAULT_TTL

    @pytest.mark.asyncio
    async def test_remove(self, fake_redis: FakeRedis) -> None:
        cache = RedisCache(fake_redis, prefix="blog")
        record = Record.new("u1", "hello")
        await cache.add("u1", record.post_id, record)

        await cache.remove("u1", record.post_id)

        assert fake_redis.values == {}

    @pytest.mark.asyncio
    async def test_undecodable_entry_is_a_miss(self, fake_redis: FakeRedis) -> None:
        fake_redis.values["crudapp:u1#p1"] = b"{broken"

        assert await RedisCache(fake_redis).get("u1", "p1") is None


class TestRedisUnavailable:
    """Redis failures degrade to misses and no-ops."""

    @pytest.mark.asyncio
    async def test_operations_do_not_raise(
        self, fake_redis: FakeRedis, caplog: pytest.LogCaptureFixture
    ) -> None:
        cache = RedisCache(fake_redis)
        record = Record.new("u1", "hello")
        fake_redis.fail = True

        with caplog.at_level(logging.WARNING, logger="crudapp.cache.redis"):
            assert await cache.get("u1", record.post_id) is None
            await cache.add("u1", record.post_id, record)
            await cache.remove("u1", record.post_id)

        assert len(caplog.records) == 3

    @pytest.mark.asyncio
    async def test_close(self, fake_redis: FakeRedis) -> None:
        await RedisCache(fake_redis).close()

        assert fake_redis.closed
