"""In-memory response cache.

Entries carry their own lifetime and the cache is bounded: once full, the
least recently used entry is evicted. Process-local, starts empty.
"""
import time
from typing import Any, Callable, NamedTuple

import structlog
from cachetools import TLRUCache

logger = structlog.get_logger(__name__)


class _Entry(NamedTuple):
    payload: Any
    ttl: float


def _time_to_use(key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class ResponseCache:
    """Decoded upstream payloads keyed by request signature."""

    def __init__(self, maxsize: int = 1000, timer: Callable[[], float] = time.monotonic):
        self._store: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=timer)
        self.hits = 0
        self.misses = 0

    def get(self, signature: str, default: Any = None) -> Any:
        """Cached payload, or ``default`` when absent or expired.

        A stored ``None`` is a hit; pass a sentinel as ``default`` to tell the
        two apart.
        """
        try:
            entry = self._store[signature]
        except KeyError:
            self.misses += 1
            return default
        self.hits += 1
        return entry.payload

    def set(self, signature: str, payload: Any, ttl: float) -> None:
        """Store a payload, replacing any previous entry for the signature."""
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._store[signature] = _Entry(payload, ttl)

    def expire(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        removed = self._store.expire()
        return len(removed) if removed is not None else 0

    def clear(self) -> None:
        self._store.clear()
        self.hits = 0
        self.misses = 0
        logger.info("cache_cleared")

    def __contains__(self, signature: str) -> bool:
        return signature in self._store

    def __len__(self) -> int:
        self._store.expire()
        return len(self._store)

    def stats(self) -> dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "keys": len(self),
            "maxsize": int(self._store.maxsize),
        }
