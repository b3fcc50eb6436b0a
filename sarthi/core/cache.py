"""Cache Layer for the Sarthi pipeline.

Three process-local regions backed by cachetools ``TTLCache``, each with its
own TTL: compiled templates (24h), full model responses (5 min) and intent
classifications (2 min). Keys hash whitespace- and case-normalized input, so
trivially different messages share an entry. Template entries are also
removed by an event-loop timer when their TTL elapses.

Nothing here is a module-level singleton; the factory builds one
``CacheLayer`` per coordinator and tests pass a fake timer.
"""

import asyncio
import hashlib
import json
import logging
import re
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Any

from cachetools import TTLCache

logger = logging.getLogger(__name__)

DEFAULT_MAXSIZE = 1000
DEFAULT_TTL = 300

TEMPLATE_TTL = 24 * 60 * 60
RESPONSE_TTL = 5 * 60
INTENT_TTL = 2 * 60

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Collapse whitespace and lowercase text before hashing."""
    return _WHITESPACE.sub(" ", text).strip().lower()


def make_cache_key(*parts: Any, prefix: str = "") -> str:
    """Build a stable cache key from arbitrary input parts.

    Strings are normalized; other values are serialized as sorted JSON so
    that dict ordering never changes the key.

    Args:
        *parts: Values that identify the cached computation.
        prefix: Optional readable prefix (e.g. ``"intent"``).

    Returns:
        ``"<prefix>:<sha256>"`` or just the hex digest when no prefix.
    """
    normalized = [
        normalize_text(p) if isinstance(p, str) else json.dumps(p, sort_keys=True, default=str)
        for p in parts
    ]
    digest = hashlib.sha256("\x1f".join(normalized).encode("utf-8")).hexdigest()
    return f"{prefix}:{digest}" if prefix else digest


_MISSING = object()


@dataclass
class RegionStats:
    hits: int = 0
    misses: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


class CacheRegion:
    """One named, TTL-bounded region of the cache layer.

    Entries share the region's TTL and are dropped lazily on the first read
    after it elapses. Every operation holds the region lock, so stages running
    in worker threads may share a region with the event loop.
    """

    def __init__(
        self,
        name: str = "default",
        maxsize: int = DEFAULT_MAXSIZE,
        default_ttl: int = DEFAULT_TTL,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.maxsize = maxsize
        self.default_ttl = default_ttl
        self.stats = RegionStats()
        self._entries: TTLCache[str, Any] = TTLCache(maxsize=maxsize, ttl=default_ttl, timer=timer)
        self._lock = threading.Lock()

    @property
    def hits(self) -> int:
        return self.stats.hits

    @property
    def misses(self) -> int:
        return self.stats.misses

    @property
    def size(self) -> int:
        """Live entries; expired ones are purged first."""
        with self._lock:
            self._entries.expire()
            return len(self._entries)

    def get(self, key: str) -> tuple[Any, bool]:
        """Look up *key*.

        Returns ``(value, True)`` on a hit and ``(None, False)`` when the key
        is absent or expired, so falsy cached values stay distinguishable.
        """
        with self._lock:
            value = self._entries.get(key, _MISSING)
            if value is _MISSING:
                self.stats.misses += 1
                return None, False
            self.stats.hits += 1
            return value, True

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = value

    def delete(self, key: str) -> bool:
        """Remove *key*; False if it was not cached."""
        with self._lock:
            return self._entries.pop(key, _MISSING) is not _MISSING

    def expire(self) -> int:
        """Purge expired entries now and return how many were dropped."""
        with self._lock:
            return len(self._entries.expire())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def invalidate_by_pattern(self, pattern: str) -> int:
        """Drop every key matching the glob *pattern* (e.g. ``"template:hi:*"``)."""
        with self._lock:
            doomed = [key for key in self._entries if fnmatchcase(key, pattern)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug("Invalidated %d %s entries matching %s", len(doomed), self.name, pattern)
        return len(doomed)

    def get_stats(self) -> dict[str, Any]:
        return {
            "hits": self.stats.hits,
            "misses": self.stats.misses,
            "hit_rate": self.stats.hit_rate,
            "size": self.size,
            "maxsize": self.maxsize,
            "ttl": self.default_ttl,
        }


class CacheLayer:
    """The three cache regions shared by pipeline stages.

    - ``templates``: compiled prompt/template text, 24h, eagerly expired
    - ``responses``: full model responses keyed by prompt hash, 5 min
    - ``intents``: intent classifications keyed by message + last turns, 2 min
    """

    def __init__(
        self,
        maxsize: int = DEFAULT_MAXSIZE,
        template_ttl: int = TEMPLATE_TTL,
        response_ttl: int = RESPONSE_TTL,
        intent_ttl: int = INTENT_TTL,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.templates = CacheRegion("templates", maxsize, template_ttl, timer)
        self.responses = CacheRegion("responses", maxsize, response_ttl, timer)
        self.intents = CacheRegion("intents", maxsize, intent_ttl, timer)
        self._expiry_handles: dict[str, asyncio.TimerHandle] = {}

    @classmethod
    def from_settings(cls, settings: Any) -> "CacheLayer":
        """Build a CacheLayer from application settings."""
        return cls(
            maxsize=settings.CACHE_MAXSIZE,
            template_ttl=settings.TEMPLATE_CACHE_TTL,
            response_ttl=settings.RESPONSE_CACHE_TTL,
            intent_ttl=settings.INTENT_CACHE_TTL,
        )

    def set_template(self, key: str, value: Any) -> None:
        """Store a compiled template or pool and schedule its eager expiry.

        When called outside a running event loop only passive expiry
        applies.
        """
        self.templates.set(key, value)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        previous = self._expiry_handles.pop(key, None)
        if previous is not None:
            previous.cancel()
        self._expiry_handles[key] = loop.call_later(
            self.templates.default_ttl, self._expire_template, key
        )

    def _expire_template(self, key: str) -> None:
        self._expiry_handles.pop(key, None)
        if self.templates.delete(key):
            logger.debug("Template cache entry expired: %s", key)

    def clear(self) -> None:
        """Clear every region and cancel pending template timers."""
        for handle in self._expiry_handles.values():
            handle.cancel()
        self._expiry_handles.clear()
        self.templates.clear()
        self.responses.clear()
        self.intents.clear()
        logger.info("All caches cleared")

    def get_stats(self) -> dict[str, Any]:
        """Statistics for every region."""
        return {
            "templates": self.templates.get_stats(),
            "responses": self.responses.get_stats(),
            "intents": self.intents.get_stats(),
        }
