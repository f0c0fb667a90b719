"""Time-bounded, size-bounded memo of route obstacle lookups."""
from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Sequence

from waispath.core.entities import CacheEntry, Obstacle, Polyline
from waispath.utils.logger import logger

DEFAULT_TTL_SECONDS = 120.0
DEFAULT_MAX_ENTRIES = 50


def hash_polyline(polyline: Polyline) -> str:
    """Coarse fingerprint of a route built from its first, middle and last vertices."""

    if not polyline:
        return "empty"

    first = polyline[0]
    middle = polyline[len(polyline) // 2]
    last = polyline[-1]
    return "-".join(f"{point.latitude:.4f},{point.longitude:.4f}" for point in (first, middle, last))


def build_cache_key(route_a: Polyline, route_b: Polyline, buffer_meters: float) -> str:
    return f"{hash_polyline(route_a)}-{hash_polyline(route_b)}-{buffer_meters:g}"


class ObstacleCache:
    """Insertion-ordered cache with expiry and oldest-first eviction.

    Reads and writes are serialised with a lock because the matcher may be shared
    between navigation sessions running on different threads.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if max_entries < 1:
            raise ValueError("Cache must hold at least one entry.")
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[tuple[Obstacle, ...]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.timestamp < self._ttl_seconds:
                return entry.obstacles
            del self._entries[key]
        logger.debug("Dropped expired obstacle cache entry {}", key)
        return None

    def put(self, key: str, obstacles: Sequence[Obstacle]) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self._max_entries:
                oldest_key, _ = self._entries.popitem(last=False)
                logger.debug("Evicted oldest obstacle cache entry {}", oldest_key)
            self._entries[key] = CacheEntry(key=key, obstacles=tuple(obstacles), timestamp=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Route obstacle cache cleared")

    def stats(self) -> dict[str, float]:
        with self._lock:
            size = len(self._entries)
        return {
            "size": size,
            "max_size": self._max_entries,
            "ttl_minutes": self._ttl_seconds / 60,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["ObstacleCache", "build_cache_key", "hash_polyline"]
