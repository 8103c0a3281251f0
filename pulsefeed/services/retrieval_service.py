"""
Retrieval Service
=================

Delay-gated, diversity-shuffled reads of recent news. The newest
``overfetch_factor * limit`` matching rows are loaded, shuffled uniformly and
truncated, so repeat requests surface different items from the same window.
"""

import random
from datetime import datetime, timedelta
from typing import List, MutableSequence, Optional, TypeVar

from ..config.settings import RetrievalSettings
from ..database.models import PersistedNewsItem, Vertical, utc_now
from ..storage.news_repository import NewsRepository
from ..utils.logging import get_logger_for_component

T = TypeVar("T")


def fisher_yates_shuffle(items: MutableSequence[T], rng: Optional[random.Random] = None) -> MutableSequence[T]:
    """Shuffle ``items`` in place with a uniform Fisher-Yates pass."""
    rng = rng or random.Random()
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items


class RetrievalService:
    """Reads recent news for API callers."""

    def __init__(
        self,
        repository: NewsRepository,
        settings: Optional[RetrievalSettings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.repository = repository
        self.settings = settings or RetrievalSettings()
        self.rng = rng or random.Random()
        self.logger = get_logger_for_component("retrieval")

    def clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None or limit < 1:
            return self.settings.default_limit
        return min(limit, self.settings.max_limit)

    def get_recent(
        self,
        vertical: Optional[Vertical] = None,
        ticker: Optional[str] = None,
        limit: Optional[int] = None,
        delay_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> List[PersistedNewsItem]:
        """Get up to ``limit`` recent items visible after the delivery delay.

        Args:
            vertical: Optional vertical filter
            ticker: Optional ticker filter
            limit: Items to return (clamped to configured bounds)
            delay_minutes: Items published within this many minutes are hidden
            now: Reference time (default: current UTC time)

        Returns:
            Items drawn from the newest ``overfetch_factor * limit`` matches

        Raises:
            DatabaseError: If the store cannot be read
        """
        limit = self.clamp_limit(limit)
        cutoff = None
        if delay_minutes > 0:
            cutoff = (now or utc_now()) - timedelta(minutes=delay_minutes)

        candidates = self.repository.get_recent(
            fetch_limit=limit * self.settings.overfetch_factor,
            vertical=vertical,
            ticker=ticker,
            published_before=cutoff,
        )

        fisher_yates_shuffle(candidates, self.rng)
        selected = candidates[:limit]

        self.logger.debug(
            f"Served {len(selected)} of {len(candidates)} candidates "
            f"(vertical={vertical.value if vertical else 'all'}, ticker={ticker}, "
            f"delay={delay_minutes}m)"
        )
        return selected
