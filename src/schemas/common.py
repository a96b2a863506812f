"""Schemas shared by health probes and error responses."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness probe body. Never inspects dependencies."""

    status: HealthStatus
    timestamp: datetime = Field(default_factory=_utcnow)
    version: str = "0.1.0"
    application_tag: str | None = Field(default=None, description="Tag this instance claims orders with")


class CheckResult(BaseModel):
    """Outcome of probing one dependency."""

    name: str = Field(description="Dependency name, e.g. database or gateway")
    healthy: bool
    latency_ms: float | None = Field(default=None, description="Probe duration in milliseconds")
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness probe body. Unhealthy if any check failed."""

    status: HealthStatus
    timestamp: datetime = Field(default_factory=_utcnow)
    checks: list[CheckResult] = Field(default_factory=list)


class LatencyStatsResponse(BaseModel):
    """Recent request latency figures kept in process memory."""

    total_requests: int
    avg_latency_ms: float
    p95_latency_ms: float
    by_path: dict[str, dict[str, float]] = Field(default_factory=dict)


class ErrorDetail(BaseModel):
    """A single field-level or contextual error entry."""

    loc: list[str] | None = Field(default=None, description="Path to the offending field")
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Envelope returned for every failed request.

    ``success`` is always false so clients can branch on one field for
    both successful and failed payment calls.
    """

    success: bool = False
    error: str = Field(description="Machine-readable error type")
    message: str = Field(description="Human-readable description")
    details: list[ErrorDetail] | None = None
    request_id: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_exception(
        cls,
        error_type: str,
        message: str,
        details: list[dict[str, Any]] | None = None,
        request_id: str | None = None,
    ) -> "ErrorResponse":
        """Build the envelope from an error's type, message and raw details."""
        parsed = [
            ErrorDetail(loc=d.get("loc"), msg=d.get("msg", str(d)), type=d.get("type", "error"))
            for d in details or []
        ]
        return cls(
            error=error_type,
            message=message,
            details=parsed or None,
            request_id=request_id,
        )
