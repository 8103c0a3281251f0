"""
LRU Cache
=========

Bounded in-memory cache with least-recently-used eviction, used to answer
repeat duplicate checks without a round trip to the durable store.
"""

import time
from collections import OrderedDict
from typing import Callable, Generic, Hashable, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """Least-recently-used cache with a fixed capacity.

    Every ``get`` hit and every ``set`` moves the key to the most-recent
    position; inserting past capacity evicts exactly one entry, the oldest.

    When ``max_age_seconds`` is given, entries older than that are treated as
    absent and dropped on access.
    """

    def __init__(
        self,
        capacity: int = 1000,
        max_age_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._entries: "OrderedDict[K, Tuple[V, float]]" = OrderedDict()

    def get(self, key: K) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, stored_at = entry
        if self._expired(stored_at):
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return value

    def set(self, key: K, value: V) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = (value, self._clock())

        if len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def has(self, key: K) -> bool:
        """Membership test that does not touch recency."""
        entry = self._entries.get(key)
        return entry is not None and not self._expired(entry[1])

    def clear(self) -> None:
        self._entries.clear()

    def _expired(self, stored_at: float) -> bool:
        if self.max_age_seconds is None:
            return False
        return self._clock() - stored_at >= self.max_age_seconds

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.has(key)  # type: ignore[arg-type]
