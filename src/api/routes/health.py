"""Liveness, readiness and latency endpoints for deployment probes."""

import time
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Response, status

from src.api.middleware.latency_logging import get_latency_stats
from src.core.config import get_settings
from src.core.gateway import get_gateway_client
from src.core.supabase import check_database_connection
from src.schemas.common import (
    CheckResult,
    HealthResponse,
    HealthStatus,
    LatencyStatsResponse,
    ReadinessResponse,
)

router = APIRouter(tags=["health"])


async def _timed_check(name: str, probe: Callable[[], Awaitable[dict[str, Any]]]) -> CheckResult:
    start_time = time.perf_counter()
    result = await probe()
    latency_ms = (time.perf_counter() - start_time) * 1000
    return CheckResult(
        name=name,
        healthy=result["healthy"],
        latency_ms=round(latency_ms, 2),
        error=result.get("error"),
    )


async def _check_gateway_configured() -> dict[str, Any]:
    # Credentials only; a live call would count against the gateway rate limit
    if get_gateway_client().is_configured:
        return {"healthy": True}
    return {"healthy": False, "error": "Gateway credentials not configured"}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Returns 200 whenever the process is serving requests.",
)
async def health_check() -> HealthResponse:
    """Report that the service is up."""
    return HealthResponse(status=HealthStatus.HEALTHY, application_tag=get_settings().application_tag)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Datastore reachable and gateway configured"},
        503: {"description": "At least one dependency is unavailable"},
    },
    summary="Readiness check",
    description="Probes the datastore and checks gateway credentials.",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check whether payments can currently be processed.

    A payment cannot be recorded without the datastore, and orders cannot
    be minted or ownership checked without gateway credentials, so either
    failing marks the instance unready with a 503.

    Args:
        response: Response whose status code is set on failure.

    Returns:
        ReadinessResponse: Overall status and the individual checks.
    """
    checks = [
        await _timed_check("database", check_database_connection),
        await _timed_check("gateway", _check_gateway_configured),
    ]

    ready = all(check.healthy for check in checks)
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status=HealthStatus.HEALTHY if ready else HealthStatus.UNHEALTHY,
        checks=checks,
    )


@router.get(
    "/health/latency",
    response_model=LatencyStatsResponse,
    summary="Request latency stats",
    description="Average and p95 latency of recent requests, grouped by route.",
)
async def latency_stats() -> LatencyStatsResponse:
    """Report recent request latencies."""
    stats = get_latency_stats()
    return LatencyStatsResponse(**stats.get_stats(), by_path=stats.get_stats_by_path())
