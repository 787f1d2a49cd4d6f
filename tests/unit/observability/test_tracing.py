"""Tests for tracing helpers and middleware."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import NoOpTracer, StatusCode

from crudapp.observability.tracing import TracingMiddleware, get_tracer, record_error
from crudapp.storage.memory import MemoryStorage


def _tracer() -> tuple[TracerProvider, InMemorySpanExporter]:
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider, exporter


class TestGetTracer:
    """Tests for get_tracer."""

    def test_disabled_gives_noop(self) -> None:
        assert isinstance(get_tracer("crudapp.test", enabled=False), NoOpTracer)

    def test_enabled_gives_real_tracer(self) -> None:
        assert not isinstance(get_tracer("crudapp.test", enabled=True), NoOpTracer)


def test_record_error_marks_span() -> None:
    provider, exporter = _tracer()
    tracer = provider.get_tracer("test")

    with tracer.start_as_current_span("op") as span:
        record_error(span, RuntimeError("boom"))

    (finished,) = exporter.get_finished_spans()
    assert finished.status.status_code == StatusCode.ERROR
    assert finished.events[0].name == "exception"


class TestTracingMiddleware:
    """Tests for TracingMiddleware."""

    def _app(self, provider: TracerProvider) -> FastAPI:
        app = FastAPI()
        app.add_middleware(TracingMiddleware, tracer=provider.get_tracer("test"))

        @app.get("/v1/users/{user_id}/posts")
        async def list_posts(user_id: str) -> dict[str, list[str]]:
            return {"posts": []}

        @app.get("/health/live")
        async def live() -> dict[str, str]:
            return {"status": "ok"}

        return app

    def test_request_span(self) -> None:
        provider, exporter = _tracer()
        client = TestClient(self._app(provider))

        client.get("/v1/users/u1/posts")

        (span,) = exporter.get_finished_spans()
        assert span.name == "GET /v1/users/u1/posts"
        assert span.attributes["http.status_code"] == 200

    def test_health_is_not_traced(self) -> None:
        provider, exporter = _tracer()
        client = TestClient(self._app(provider))

        client.get("/health/live")

        assert exporter.get_finished_spans() == ()


@pytest.mark.asyncio
async def test_storage_operations_are_traced() -> None:
    provider, exporter = _tracer()
    storage = MemoryStorage(tracer=provider.get_tracer("test"))

    record = await storage.create("u1", "hello")
    await storage.read("u1", record.post_id)

    assert [span.name for span in exporter.get_finished_spans()] == [
        "memory.create",
        "memory.read",
    ]
