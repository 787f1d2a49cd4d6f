"""Tests for health and metrics endpoints."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from crudapp.api.app import create_app
from crudapp.api.routers import health
from crudapp.config import Settings
from crudapp.storage.base import Storage
from crudapp.storage.memory import MemoryStorage


@pytest.fixture
def config() -> Settings:
    return Settings(env="test", enable_tracing=False)


class TestHealth:
    """Tests for /health probes."""

    def test_live(self, config: Settings) -> None:
        with TestClient(create_app(storage=MemoryStorage(), config=config)) as client:
            response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_ready(self, config: Settings) -> None:
        with TestClient(create_app(storage=MemoryStorage(), config=config)) as client:
            response = client.get("/health/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"]["storage"]["status"] == "up"

    def test_not_ready(self, config: Settings) -> None:
        storage = AsyncMock(spec=Storage)
        storage.health_check.return_value = False

        with TestClient(create_app(storage=storage, config=config)) as client:
            response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["checks"]["storage"] == {
            "status": "down",
            "latency_ms": body["checks"]["storage"]["latency_ms"],
            "message": "Storage check failed",
        }

    @pytest.mark.asyncio
    async def test_check_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def hang() -> bool:
            await asyncio.sleep(10)
            return True

        storage = AsyncMock(spec=Storage)
        storage.health_check.side_effect = hang
        monkeypatch.setattr(health, "CHECK_TIMEOUT", 0.01)

        component = await health.check_storage(storage)

        assert component.status == health.HealthStatus.UNHEALTHY
        assert component.message == "Storage check timed out"


class TestMetricsEndpoint:
    """Tests for /metrics."""

    def test_metrics_after_traffic(self, config: Settings) -> None:
        with TestClient(create_app(config=config)) as client:
            post = client.post("/v1/users/u1/posts", json={"data": "hello"}).json()
            client.get(f"/v1/users/u1/posts/{post['postID']}")
            response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert 'crudapp_storage_operations_total{operation="create",outcome="ok"} 1.0' in response.text
        assert 'crudapp_cache_requests_total{result="hit"} 1.0' in response.text

    def test_metrics_disabled(self) -> None:
        config = Settings(env="test", enable_metrics=False)

        with TestClient(create_app(storage=MemoryStorage(), config=config)) as client:
            assert client.get("/metrics").status_code == 404


def test_lifespan_sets_up_and_closes_storage(config: Settings) -> None:
    storage = AsyncMock(spec=Storage)

    with TestClient(create_app(storage=storage, config=config)):
        storage.setup.assert_awaited_once()
        storage.close.assert_not_awaited()

    storage.close.assert_awaited_once()


