"""Observability module for crudapp.

Provides tracing, metrics, and structured logging:
- OpenTelemetry tracing with OTLP export
- Prometheus counters for cache and storage outcomes
- JSON structured logging with correlation IDs
"""

from crudapp.observability.logging import (
    LogContext,
    configure_logging,
    request_id_var,
    user_id_var,
)
from crudapp.observability.metrics import StorageMetrics
from crudapp.observability.tracing import (
    TracingMiddleware,
    get_tracer,
    setup_tracing,
    shutdown_tracing,
)

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "request_id_var",
    "user_id_var",
    # Tracing
    "setup_tracing",
    "shutdown_tracing",
    "get_tracer",
    "TracingMiddleware",
    # Metrics
    "StorageMetrics",
]
