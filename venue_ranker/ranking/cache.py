from __future__ import annotations

import threading
import time
from collections.abc import Callable, Hashable
from typing import Any


class ExpiringCache:
    """
    Thread-safe in-memory map whose entries expire a fixed time after insertion.

    Entries are ``(value, created_at)`` tuples and are never mutated; a read
    after expiry behaves as a miss and evicts the entry. Writes also sweep
    out every expired entry once per TTL period, so keys that are never read
    again do not accumulate. There is no explicit invalidation.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._last_sweep = clock()

    def get(self, key: Hashable) -> Any | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry and now - entry[1] < self.ttl_seconds:
                self._hits += 1
                return entry[0]
            if entry:
                del self._entries[key]
            self._misses += 1
            return None

    def set(self, key: Hashable, value: Any) -> None:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.ttl_seconds:
                self._sweep_locked(now)
            self._entries[key] = (value, now)

    def sweep(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        with self._lock:
            return self._sweep_locked(now)

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, (_, created) in self._entries.items() if now - created >= self.ttl_seconds]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now
        return len(expired)

    def stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
