"""
Duplicate Gate
==============

Two-tier existence check for content hashes: a process-local LRU cache in
front of a durable Redis store whose records expire after the dedup TTL.

The durable store is authoritative. When it cannot be reached the gate
raises ``DeduplicationError`` rather than answering; the caller drops the
item for this cycle and the feed offers it again on the next poll.
"""

import asyncio
import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Optional

from redis.exceptions import RedisError

from .lru_cache import LRUCache
from ..config.settings import DedupSettings
from ..utils.exceptions import DeduplicationError, ErrorCode
from ..utils.logging import get_logger_for_component


@dataclass
class DedupStats:
    """Snapshot of gate counters."""

    cache_hits: int = 0
    cache_misses: int = 0
    store_queries: int = 0
    marked: int = 0
    size: int = 0
    capacity: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.cache_hits + self.cache_misses
        if lookups == 0:
            return 0.0
        return self.cache_hits / lookups

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["hit_rate"] = round(self.hit_rate, 4)
        return data


class DuplicateGate:
    """Answers "has this hash been ingested within the TTL window?".

    One instance is built at startup and shared by every ingestion caller.
    """

    def __init__(
        self,
        store: Any,
        capacity: int = 1000,
        ttl_seconds: int = 86400,
        key_prefix: str = "news:",
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the gate.

        Args:
            store: Async Redis-compatible client (``exists`` and ``set`` with ``ex``)
            capacity: LRU capacity
            ttl_seconds: Lifetime of durable records; cached entries age out with them
            key_prefix: Prefix for durable keys
            clock: Monotonic clock, injectable for tests
        """
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self.cache: LRUCache[str, bool] = LRUCache(
            capacity, max_age_seconds=ttl_seconds, clock=clock
        )
        self.logger = get_logger_for_component("duplicate_gate")
        self._stats = DedupStats(capacity=capacity)

    @classmethod
    def from_settings(cls, store: Any, settings: DedupSettings) -> "DuplicateGate":
        return cls(
            store,
            capacity=settings.cache_capacity,
            ttl_seconds=settings.ttl_seconds,
            key_prefix=settings.key_prefix,
        )

    def _key(self, content_hash: str) -> str:
        return f"{self.key_prefix}{content_hash}"

    async def is_duplicate(self, content_hash: str) -> bool:
        """Check whether a hash was already processed.

        Raises:
            DeduplicationError: If the durable store cannot be queried
        """
        cached = self.cache.get(content_hash)
        if cached is not None:
            self._stats.cache_hits += 1
            return cached

        self._stats.cache_misses += 1
        self._stats.store_queries += 1

        try:
            exists = await self.store.exists(self._key(content_hash))
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise DeduplicationError(
                f"Durable dedup lookup failed: {e}",
                content_hash=content_hash,
                error_code=ErrorCode.DEDUP_STORE_UNAVAILABLE,
            ) from e

        duplicate = bool(exists)
        self.cache.set(content_hash, duplicate)
        return duplicate

    async def mark_processed(self, content_hash: str) -> None:
        """Record a hash as processed in both tiers.

        Raises:
            DeduplicationError: If the durable write fails
        """
        try:
            await self.store.set(self._key(content_hash), "1", ex=self.ttl_seconds)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise DeduplicationError(
                f"Durable dedup write failed: {e}",
                content_hash=content_hash,
                error_code=ErrorCode.DEDUP_STORE_ERROR,
            ) from e

        self.cache.set(content_hash, True)
        self._stats.marked += 1

    def stats(self) -> DedupStats:
        snapshot = DedupStats(**asdict(self._stats))
        snapshot.size = len(self.cache)
        return snapshot

    def reset(self, capacity: Optional[int] = None) -> None:
        """Clear the cache and counters."""
        if capacity is not None:
            self.cache = LRUCache(
                capacity, max_age_seconds=self.ttl_seconds, clock=self.cache._clock
            )
        else:
            self.cache.clear()
        self._stats = DedupStats(capacity=self.cache.capacity)
        self.logger.debug("Duplicate gate reset")
