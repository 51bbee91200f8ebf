"""Thread-safe in-memory geocode cache with TTL and oldest-first eviction."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional

from ...config import settings
from ...models.domain import Point

REVERSE_KEY_DECIMALS = 3


def forward_key(address: str) -> str:
    return "fwd:" + " ".join(address.lower().split())


def reverse_key(point: Point) -> str:
    return f"rev:{point.lat:.{REVERSE_KEY_DECIMALS}f},{point.lng:.{REVERSE_KEY_DECIMALS}f}"


class GeocodeCache:
    def __init__(
        self,
        default_ttl: float | None = None,
        max_size: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store: dict[str, tuple[Any, float]] = {}
        self._default_ttl = default_ttl or settings.geocode_cache_ttl_seconds
        self._max_size = max_size or settings.geocode_cache_size
        self._clock = clock
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            value, expire_at = entry
            if self._clock() > expire_at:
                del self._store[key]
                self._misses += 1
                return None
            self._hits += 1
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = ttl if ttl is not None else self._default_ttl
        with self._lock:
            if key not in self._store and len(self._store) >= self._max_size:
                oldest = min(self._store, key=lambda k: self._store[k][1])
                del self._store[oldest]
            self._store[key] = (value, self._clock() + ttl)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    @property
    def stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "size": len(self._store),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 3) if total > 0 else 0.0,
        }


geocode_cache = GeocodeCache()
