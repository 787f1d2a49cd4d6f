"""Prometheus metrics for crudapp.

Provides:
- Cache metrics (hits, misses, swallowed errors)
- Storage operation counts by outcome

Usage:
    from crudapp.observability.metrics import StorageMetrics

    metrics = StorageMetrics()
    storage = CachingStorage(backend, cache, metrics=metrics)
    ...
    body = metrics.render()
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest

__all__ = ["CONTENT_TYPE_LATEST", "StorageMetrics"]


class StorageMetrics:
    """Counters recorded by the caching coordinator.

    Each instance owns its registry unless one is passed in, so several
    coordinators (or test cases) never collide on metric names.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        self.cache_requests_total = Counter(
            "crudapp_cache_requests_total",
            "Cache lookups by result",
            ["result"],
            registry=self.registry,
        )
        self.cache_errors_total = Counter(
            "crudapp_cache_errors_total",
            "Cache failures absorbed by the coordinator",
            ["operation"],
            registry=self.registry,
        )
        self.storage_operations_total = Counter(
            "crudapp_storage_operations_total",
            "Storage operations by outcome",
            ["operation", "outcome"],
            registry=self.registry,
        )

    def cache_hit(self) -> None:
        self.cache_requests_total.labels(result="hit").inc()

    def cache_miss(self) -> None:
        self.cache_requests_total.labels(result="miss").inc()

    def cache_error(self, operation: str) -> None:
        self.cache_errors_total.labels(operation=operation).inc()

    def storage_operation(self, operation: str, outcome: str) -> None:
        self.storage_operations_total.labels(operation=operation, outcome=outcome).inc()

    def value(self, name: str, **labels: str) -> float:
        """Current sample value, 0.0 if never recorded."""
        sample = self.registry.get_sample_value(name, labels)
        return sample if sample is not None else 0.0

    def render(self) -> bytes:
        """Exposition-format dump of every metric in the registry."""
        return generate_latest(self.registry)
