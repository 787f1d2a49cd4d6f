"""Health check endpoints.

Kubernetes-style probes:
- /health/live  - Liveness probe (OK while the process is serving)
- /health/ready - Readiness probe (checks the storage backend)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from crudapp.api.deps import get_storage
from crudapp.storage.base import Storage

router = APIRouter(prefix="/health", tags=["health"])

CHECK_TIMEOUT = 5.0  # seconds


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    latency_ms: float
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "status": "up" if self.status == HealthStatus.HEALTHY else "down",
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def check_storage(storage: Storage) -> ComponentHealth:
    """Check storage backend connectivity."""
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(storage.health_check(), timeout=CHECK_TIMEOUT)
        message = None if healthy else "Storage check failed"
    except asyncio.TimeoutError:
        healthy, message = False, "Storage check timed out"
    except Exception as e:
        healthy, message = False, str(e)
    return ComponentHealth(
        name="storage",
        status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
        latency_ms=(time.monotonic() - start) * 1000,
        message=message,
    )


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/ready")
async def readiness(storage: Storage = Depends(get_storage)) -> JSONResponse:
    """Readiness probe.

    Returns 200 when the storage backend answers, 503 otherwise.
    """
    component = await check_storage(storage)
    healthy = component.status == HealthStatus.HEALTHY
    return JSONResponse(
        content={
            "status": component.status.value,
            "checks": {component.name: component.to_dict()},
        },
        status_code=200 if healthy else 503,
    )
