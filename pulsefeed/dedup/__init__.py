"""
PulseFeed Deduplication
=======================

Two-tier duplicate detection: a bounded LRU cache in front of Redis.
"""

from .lru_cache import LRUCache
from .duplicate_gate import DedupStats, DuplicateGate

__all__ = ["LRUCache", "DedupStats", "DuplicateGate"]
