"""Per-request latency logging and an in-process latency sample buffer."""

import logging
import re
import time
from collections import defaultdict, deque
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

SLOW_REQUEST_THRESHOLD_MS = 1000
VERY_SLOW_REQUEST_THRESHOLD_MS = 3000
SLOW_PROBE_THRESHOLD_MS = 100

PROBE_PATHS = frozenset({"/health", "/health/ready", "/health/latency"})

# Tenant ids in history and subscription paths; fixed sub-routes are kept
_TENANT_SEGMENT = re.compile(r"/(history|subscriptions)/(?!plans|tenants|billing)[^/]+")


def normalize_path(path: str) -> str:
    """Collapse tenant ids so stats group by route rather than by tenant."""
    return _TENANT_SEGMENT.sub(lambda m: f"/{m.group(1)}/{{id}}", path)


class LatencyStats:
    """Bounded buffer of recent (path, latency_ms) samples."""

    def __init__(self, max_samples: int = 1000) -> None:
        self._samples: deque[tuple[str, float]] = deque(maxlen=max_samples)

    def record(self, path: str, latency_ms: float) -> None:
        self._samples.append((normalize_path(path), latency_ms))

    def get_stats(self) -> dict:
        """Average and p95 over every buffered sample."""
        latencies = sorted(latency for _, latency in self._samples)
        if not latencies:
            return {"total_requests": 0, "avg_latency_ms": 0.0, "p95_latency_ms": 0.0}

        total = len(latencies)
        return {
            "total_requests": total,
            "avg_latency_ms": round(sum(latencies) / total, 2),
            "p95_latency_ms": round(latencies[min(int(total * 0.95), total - 1)], 2),
        }

    def get_stats_by_path(self) -> dict:
        """Sample count and average latency per normalized route."""
        by_path: dict[str, list[float]] = defaultdict(list)
        for path, latency in self._samples:
            by_path[path].append(latency)
        return {
            path: {"count": len(values), "avg_ms": round(sum(values) / len(values), 2)}
            for path, values in by_path.items()
        }


_latency_stats: LatencyStats | None = None


def get_latency_stats() -> LatencyStats:
    """Get or create the global latency stats instance."""
    global _latency_stats
    if _latency_stats is None:
        _latency_stats = LatencyStats()
    return _latency_stats


def _log_level(status_code: int, latency_ms: float, failed: bool) -> tuple[int, str]:
    if failed or status_code >= 500:
        return logging.ERROR, ""
    if latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS:
        return logging.ERROR, "VERY SLOW REQUEST: "
    if latency_ms > SLOW_REQUEST_THRESHOLD_MS:
        return logging.WARNING, "SLOW REQUEST: "
    if status_code >= 400:
        return logging.WARNING, ""
    return logging.INFO, ""


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log method, route, status and duration of every request.

    Probe endpoints are excluded from the stats buffer and only logged,
    at debug level, when unusually slow.
    """
    start_time = time.perf_counter()
    path = request.url.path
    response = None
    failed = False

    try:
        response = await call_next(request)
        return response
    except Exception:
        failed = True
        raise
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code if response is not None else 500
        message = "%s %s - %d - %.2fms"
        args = (request.method, normalize_path(path), status_code, latency_ms)

        if path in PROBE_PATHS:
            if latency_ms > SLOW_PROBE_THRESHOLD_MS:
                logger.debug(message, *args)
        else:
            get_latency_stats().record(path, latency_ms)
            level, prefix = _log_level(status_code, latency_ms, failed)
            logger.log(level, prefix + message, *args)
