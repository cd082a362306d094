"""Read cache with per-resource TTL.

Keyed by resource identity (a pool address, a commitment owner). Writers
invalidate the keys they touch, readers get a fresh load once an entry is
older than ``ttl``. Time comes from the injected clock, in seconds.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

from securelp_core.protocol.clock import Clock

V = TypeVar("V")


class TTLCache(Generic[V]):
    def __init__(self, clock: Clock, ttl: int = 1) -> None:
        if ttl < 0:
            msg = "ttl must be non-negative"
            raise ValueError(msg)
        self._clock = clock
        self._ttl = ttl
        self._entries: dict[Hashable, tuple[int, V]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: Hashable) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock.now() - stored_at >= self._ttl:
            del self._entries[key]
            return None
        return value

    def put(self, key: Hashable, value: V) -> None:
        self._entries[key] = (self._clock.now(), value)

    def get_or_load(self, key: Hashable, loader: Callable[[], V]) -> V:
        value = self.get(key)
        if value is not None:
            self._hits += 1
            return value
        self._misses += 1
        value = loader()
        self.put(key, value)
        return value

    def invalidate(self, key: Hashable | None = None) -> None:
        """Drop one key, or everything when key is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    @property
    def hits(self) -> int:
        return self._hits

    @property
    def misses(self) -> int:
        return self._misses

    def __len__(self) -> int:
        return len(self._entries)
