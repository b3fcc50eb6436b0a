"""Failure isolation for the model backend and the remote check-in service.

A stage that depends on an external collaborator runs its call through a
``CircuitBreaker`` and under ``run_with_timeout``. Both failure modes surface
as ``BackendError`` subclasses, so stages recover from them with the same
fallback path. Calls are never retried: a failed stage falls back at once and
turn latency stays bounded by the stage timeouts.

Every breaker registers itself by name; the health endpoint reads the
registry through ``get_all_circuit_breakers``.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar

from sarthi.core.exceptions import BackendError, BackendTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Breaker state as reported by the health endpoint."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(BackendError):
    """A call was refused because its breaker is open (503)."""

    def __init__(self, service_name: str, retry_after: float = 0.0) -> None:
        super().__init__(service_name, f"Circuit breaker is open for {service_name}")
        self.code = "CIRCUIT_OPEN"
        self.status_code = 503
        self.details["retry_after"] = round(retry_after, 1)
        self.service_name = service_name
        self.retry_after = retry_after


_registry: dict[str, "CircuitBreaker"] = {}
_registry_lock = threading.Lock()


def get_all_circuit_breakers() -> dict[str, "CircuitBreaker"]:
    """Snapshot of every breaker created in this process, keyed by service."""
    with _registry_lock:
        return dict(_registry)


class CircuitBreaker:
    """Consecutive-failure breaker shared by all turns calling one service.

    CLOSED counts consecutive failures and opens at ``failure_threshold``.
    OPEN refuses calls until ``recovery_timeout`` seconds have passed since it
    opened, then lets trial calls through as HALF_OPEN. HALF_OPEN closes after
    ``success_threshold`` consecutive successes and reopens on any failure.

    A breaker created with a name already in the registry replaces the older
    one there.
    """

    def __init__(
        self,
        service_name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        success_threshold: int = 3,
    ) -> None:
        self.service_name = service_name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._trial_successes = 0
        self._opened_at: float | None = None
        self._lock = threading.Lock()

        with _registry_lock:
            _registry[service_name] = self

    def _move_to(self, state: CircuitState, reason: str) -> None:
        # Caller holds self._lock.
        if state == self._state:
            return
        logger.warning(
            "Circuit breaker %s -> %s for %s (%s)",
            self._state.value.upper(),
            state.value.upper(),
            self.service_name,
            reason,
        )
        self._state = state
        self._trial_successes = 0
        self._opened_at = time.monotonic() if state == CircuitState.OPEN else None
        if state == CircuitState.CLOSED:
            self._failure_count = 0

    def _elapsed_open(self) -> float:
        if self._opened_at is None:
            return 0.0
        return time.monotonic() - self._opened_at

    @property
    def state(self) -> CircuitState:
        """Current state; an OPEN breaker past its recovery timeout reads HALF_OPEN."""
        with self._lock:
            if self._state == CircuitState.OPEN:
                elapsed = self._elapsed_open()
                if elapsed >= self.recovery_timeout:
                    self._move_to(CircuitState.HALF_OPEN, f"trial calls after {elapsed:.1f}s")
            return self._state

    def retry_after(self) -> float:
        """Seconds until an OPEN breaker admits trial calls, else 0."""
        with self._lock:
            if self._state != CircuitState.OPEN:
                return 0.0
            return max(0.0, self.recovery_timeout - self._elapsed_open())

    def check(self) -> None:
        """Raise ``CircuitBreakerOpen`` unless a call may go through now."""
        if self.state == CircuitState.OPEN:
            raise CircuitBreakerOpen(self.service_name, retry_after=self.retry_after())

    def record_success(self) -> None:
        with self._lock:
            if self._state != CircuitState.HALF_OPEN:
                self._failure_count = 0
                return
            self._trial_successes += 1
            if self._trial_successes >= self.success_threshold:
                self._move_to(CircuitState.CLOSED, f"{self._trial_successes} trial calls succeeded")

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN:
                self._move_to(CircuitState.OPEN, "trial call failed")
            elif self._state == CircuitState.OPEN:
                # A failure reported while open restarts the recovery window.
                self._opened_at = time.monotonic()
            elif self._failure_count >= self.failure_threshold:
                self._move_to(CircuitState.OPEN, f"{self._failure_count} consecutive failures")

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await ``func(*args, **kwargs)`` through the breaker.

        Raises:
            CircuitBreakerOpen: If the breaker refuses the call.
            Exception: Whatever *func* raised, after counting the failure.
        """
        self.check()
        try:
            result = await func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result

    def reset(self) -> None:
        """Close the breaker and forget past failures."""
        with self._lock:
            self._move_to(CircuitState.CLOSED, "reset")
            self._failure_count = 0
        logger.info("Circuit breaker reset for %s", self.service_name)

    def to_dict(self) -> dict[str, Any]:
        """Health endpoint view of this breaker."""
        state = self.state
        return {
            "service": self.service_name,
            "state": state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
            "success_threshold": self.success_threshold,
            "retry_after": round(self.retry_after(), 1),
        }


llm_circuit_breaker = CircuitBreaker("llm_backend", failure_threshold=5, recovery_timeout=60.0)
checkin_service_circuit_breaker = CircuitBreaker(
    "checkin_service", failure_threshold=5, recovery_timeout=30.0, success_threshold=2
)


async def run_with_timeout(awaitable: Awaitable[T], timeout: float, stage: str) -> T:
    """Await *awaitable* for at most *timeout* seconds, cancelling it on expiry.

    Raises:
        BackendTimeout: If the timeout was exceeded.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError as exc:
        logger.warning("Stage %s timed out after %.1fs", stage, timeout)
        raise BackendTimeout(stage, timeout) from exc
