"""OpenTelemetry tracing for crudapp.

Provides distributed tracing with OTLP export:
- Automatic request/response tracing
- One span per storage and cache operation
- Custom span creation

Tracers are handed to storage and cache adapters through their
constructors rather than looked up from process-wide state.

Usage:
    from crudapp.observability.tracing import get_tracer

    tracer = get_tracer(__name__)
    storage = MemoryStorage(tracer=tracer)

    with tracer.start_as_current_span("my_operation") as span:
        span.set_attribute("key", "value")
        ...
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from opentelemetry import trace
from opentelemetry.trace import NoOpTracer, StatusCode, Tracer
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from crudapp.config import Settings, settings

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import TracerProvider
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

_tracer_provider: TracerProvider | None = None


def setup_tracing(config: Settings | None = None) -> None:
    """Initialize OpenTelemetry tracing.

    Configures:
    - OTLP exporter (if endpoint configured)
    - Console exporter (for development)
    """
    global _tracer_provider

    config = config or settings
    if _tracer_provider is not None:
        return

    if not config.enable_tracing:
        logger.info("Tracing is disabled")
        return

    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import (
        BatchSpanProcessor,
        ConsoleSpanExporter,
        SimpleSpanProcessor,
    )

    resource = Resource.create(
        {
            "service.name": config.app_name,
            "service.instance.id": config.instance_id,
            "deployment.environment": config.env,
        }
    )
    _tracer_provider = TracerProvider(resource=resource)

    if config.otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        otlp_exporter = OTLPSpanExporter(endpoint=config.otlp_endpoint)
        _tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        logger.info(f"OTLP tracing enabled: {config.otlp_endpoint}")
    elif config.env == "dev":
        _tracer_provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        logger.info("Console tracing enabled (dev mode)")

    trace.set_tracer_provider(_tracer_provider)
    logger.info("OpenTelemetry tracing initialized")


def get_tracer(name: str, enabled: bool | None = None) -> Tracer:
    """Get a tracer for the given module name.

    Args:
        name: Module name (typically __name__)
        enabled: Override for ``settings.enable_tracing``

    Returns:
        OpenTelemetry tracer, or a NoOpTracer if tracing is disabled
    """
    if enabled is None:
        enabled = settings.enable_tracing
    if not enabled:
        return NoOpTracer()
    return trace.get_tracer(name)


def record_error(span: Any, exc: BaseException) -> None:
    """Mark a span as failed."""
    span.record_exception(exc)
    span.set_status(StatusCode.ERROR, str(exc))


class TracingMiddleware(BaseHTTPMiddleware):
    """Middleware for HTTP request tracing.

    Adds spans for each HTTP request with:
    - HTTP method and path
    - Status code
    - Error information
    """

    def __init__(self, app: ASGIApp, tracer: Tracer | None = None) -> None:
        super().__init__(app)
        self.tracer = tracer or get_tracer("crudapp.api")

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Any]
    ) -> Response:
        """Trace HTTP requests."""
        if request.url.path.startswith("/health") or request.url.path == "/metrics":
            return await call_next(request)

        span_name = f"{request.method} {request.url.path}"

        with self.tracer.start_as_current_span(span_name) as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.url", str(request.url))
            span.set_attribute("http.route", request.url.path)

            if request.client:
                span.set_attribute("http.client_ip", request.client.host)

            try:
                response: Response = await call_next(request)
            except Exception as e:
                record_error(span, e)
                raise

            span.set_attribute("http.status_code", response.status_code)
            if response.status_code >= 500:
                span.set_status(StatusCode.ERROR)
            return response


def shutdown_tracing() -> None:
    """Shutdown tracing and flush remaining spans."""
    global _tracer_provider

    if _tracer_provider is not None:
        try:
            _tracer_provider.shutdown()
            logger.info("OpenTelemetry tracing shutdown complete")
        except Exception as e:
            logger.warning(f"Error shutting down tracing: {e}")

    _tracer_provider = None
