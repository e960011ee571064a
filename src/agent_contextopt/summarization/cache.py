"""Bounded in-memory cache shared by concurrent optimizations."""

import threading
from collections import OrderedDict
from typing import Any, Hashable, Optional


class BoundedCache:
    """
    Fixed-capacity cache with oldest-first eviction.

    policy="fifo" evicts the oldest insertion; policy="lru" also
    refreshes an entry on every hit. All operations hold one lock, so
    simultaneous optimizations can share an instance. Never persisted.
    """

    def __init__(self, max_size: int = 100, policy: str = "fifo"):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if policy not in ("fifo", "lru"):
            raise ValueError(f"Unknown cache policy: {policy}")
        self.max_size = max_size
        self.policy = policy
        self._data: "OrderedDict[Hashable, Any]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            if key not in self._data:
                self.misses += 1
                return None
            self.hits += 1
            if self.policy == "lru":
                self._data.move_to_end(key)
            return self._data[key]

    def put(self, key: Hashable, value: Any):
        with self._lock:
            if key in self._data:
                # Same fingerprint means same input: last writer wins
                self._data[key] = value
                return
            while len(self._data) >= self.max_size:
                self._data.popitem(last=False)
            self._data[key] = value

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def clear(self):
        with self._lock:
            self._data.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict:
        with self._lock:
            lookups = self.hits + self.misses
            return {
                "cache_size": len(self._data),
                "max_cache_size": self.max_size,
                "policy": self.policy,
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": (self.hits / lookups * 100) if lookups else 0.0,
            }
