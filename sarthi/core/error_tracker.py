"""Stage degradation log.

A stage that swallows an error and answers with static content records a
``Degradation`` here. The log is bounded and in memory; ``get_stats()`` and
the health endpoint read summaries from it. One tracker is built per
coordinator and shared with the model backend client.
"""

import logging
import threading
import time
from collections import Counter, deque
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

logger = logging.getLogger(__name__)

MAX_ERRORS = 1000


@dataclass(frozen=True)
class Degradation:
    stage: str
    error_type: str
    message: str
    timestamp: float


class ErrorTracker:
    """Bounded, thread-safe log of stage degradations (oldest evicted first)."""

    def __init__(self, max_errors: int = MAX_ERRORS, clock: Callable[[], float] = time.time) -> None:
        self._entries: deque[Degradation] = deque(maxlen=max_errors)
        self._clock = clock
        self._lock = threading.Lock()

    def record_error(self, stage: str, error: BaseException | str, message: str = "") -> None:
        """Record that *stage* fell back.

        Args:
            stage: Pipeline stage that fell back (e.g. "classify", "tool").
            error: The exception that caused it, or an error category string.
            message: Optional description; defaults to ``str(error)``.
        """
        entry = Degradation(
            stage=stage,
            error_type=error if isinstance(error, str) else type(error).__name__,
            message=message or str(error),
            timestamp=self._clock(),
        )
        with self._lock:
            self._entries.append(entry)
        logger.debug("Stage %s degraded: %s", stage, entry.error_type)

    def _snapshot(self) -> list[Degradation]:
        with self._lock:
            return list(self._entries)

    def get_recent_errors(self, limit: int = 50) -> list[dict[str, Any]]:
        """Newest first."""
        recent = self._snapshot()[::-1][:limit]
        return [asdict(entry) for entry in recent]

    def get_error_summary(self, period_seconds: int = 3600) -> dict[str, Any]:
        """Counts per stage and per error type over the last *period_seconds*."""
        cutoff = self._clock() - period_seconds
        window = [entry for entry in self._snapshot() if entry.timestamp >= cutoff]
        return {
            "total": len(window),
            "by_stage": dict(Counter(entry.stage for entry in window)),
            "by_type": dict(Counter(entry.error_type for entry in window)),
            "period_seconds": period_seconds,
        }

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()
