"""Metrics endpoint for Prometheus scraping."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.responses import Response

from crudapp.api.deps import get_metrics
from crudapp.observability.metrics import CONTENT_TYPE_LATEST, StorageMetrics

router = APIRouter(tags=["observability"])


@router.get(
    "/metrics",
    response_class=Response,
    summary="Prometheus metrics",
    responses={200: {"description": "Prometheus metrics", "content": {"text/plain": {}}}},
)
async def get_prometheus_metrics(metrics: StorageMetrics = Depends(get_metrics)) -> Response:
    """Return cache and storage counters in exposition format."""
    return Response(content=metrics.render(), media_type=CONTENT_TYPE_LATEST)
