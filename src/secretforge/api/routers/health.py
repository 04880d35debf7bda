"""Health check endpoints for secretforge.

Provides Kubernetes-compatible liveness and readiness probes:
- /health/live  - Liveness probe (always returns OK if process is running)
- /health/ready - Readiness probe (checks record store and cache connectivity)
- /health       - Full report

The record store is required; the cache store is optional and only
degrades the report when it is down.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from secretforge.api.deps import AppComponents, get_components

router = APIRouter(tags=["health"])

CHECK_TIMEOUT = 5.0


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    latency_ms: float
    required: bool
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "required": self.required,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def check_component(
    name: str,
    check: Callable[[], Awaitable[bool]],
    required: bool,
) -> ComponentHealth:
    """Run one connectivity check with a timeout."""
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(check(), timeout=CHECK_TIMEOUT)
        message = None if healthy else f"{name} check failed"
    except asyncio.TimeoutError:
        healthy = False
        message = f"{name} check timed out"
    except Exception as e:
        healthy = False
        message = str(e)

    return ComponentHealth(
        name=name,
        status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
        latency_ms=(time.monotonic() - start) * 1000,
        required=required,
        message=message,
    )


async def run_checks(components: AppComponents) -> tuple[HealthStatus, list[ComponentHealth]]:
    """Check every dependency and derive the overall status."""
    results = list(
        await asyncio.gather(
            check_component("database", components.records.health_check, required=True),
            check_component("redis", components.store.health_check, required=False),
        )
    )

    if all(c.status == HealthStatus.HEALTHY for c in results):
        return HealthStatus.HEALTHY, results
    if any(c.required and c.status == HealthStatus.UNHEALTHY for c in results):
        return HealthStatus.UNHEALTHY, results
    return HealthStatus.DEGRADED, results


def _status_code(status: HealthStatus) -> int:
    return 503 if status == HealthStatus.UNHEALTHY else 200


@router.get("/health")
async def full_health(components: AppComponents = Depends(get_components)) -> JSONResponse:
    """Full health report for external checks.

    Returns 503 only when a required dependency is down.
    """
    overall_status, results = await run_checks(components)

    checks: dict[str, dict[str, Any]] = {}
    for component in results:
        checks[component.name] = {
            "status": "up" if component.status == HealthStatus.HEALTHY else "down",
            "latency_ms": round(component.latency_ms, 2),
        }
        if component.message:
            checks[component.name]["message"] = component.message

    return JSONResponse(
        content={"status": overall_status.value, "checks": checks},
        status_code=_status_code(overall_status),
    )


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness probe.

    Returns OK if the process is running.
    """
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(components: AppComponents = Depends(get_components)) -> JSONResponse:
    """Readiness probe.

    The service can serve traffic without Redis, so a cache outage
    reports ``degraded`` with 200.
    """
    overall_status, results = await run_checks(components)
    return JSONResponse(
        content={
            "status": overall_status.value,
            "components": [c.to_dict() for c in results],
        },
        status_code=_status_code(overall_status),
    )
