"""Health check API routes.

Provides:
- GET /health: circuit breaker states, pipeline stats and recent degradations
- GET /health/ping: lightweight 200 for external uptime monitors
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, status

from sarthi import __version__
from sarthi.api.deps import Coordinator
from sarthi.core.resilience import CircuitState, get_all_circuit_breakers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_start_time = time.monotonic()


@router.get("", status_code=status.HTTP_200_OK)
async def health_check(coordinator: Coordinator) -> dict[str, Any]:
    """Pipeline health.

    Status is ``degraded`` while any circuit breaker is open; the process
    keeps serving fallback replies either way.
    """
    breakers = get_all_circuit_breakers()
    circuit_breaker_data = {name: cb.to_dict() for name, cb in breakers.items()}
    degraded = any(cb.state == CircuitState.OPEN for cb in breakers.values())

    return {
        "status": "degraded" if degraded else "healthy",
        "circuit_breakers": circuit_breaker_data,
        "pipeline": coordinator.get_stats(),
        "uptime_seconds": round(time.monotonic() - _start_time, 1),
        "version": __version__,
    }


@router.get("/ping", status_code=status.HTTP_200_OK)
async def ping() -> dict[str, str]:
    """Lightweight ping. No dependency checks."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
