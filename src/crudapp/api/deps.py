"""FastAPI dependencies for crudapp."""

from __future__ import annotations

from fastapi import Request

from crudapp.observability.metrics import StorageMetrics
from crudapp.storage.base import Storage


def get_storage(request: Request) -> Storage:
    """The storage the application was started with."""
    storage: Storage = request.app.state.storage
    return storage


def get_metrics(request: Request) -> StorageMetrics:
    metrics: StorageMetrics = request.app.state.metrics
    return metrics
