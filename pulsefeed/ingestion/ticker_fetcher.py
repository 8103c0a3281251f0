"""
Ticker News Fetcher
===================

On-demand stock news for one symbol. Queries the per-ticker feed templates
concurrently and feeds the results through the ingestion pipeline.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .feed_poller import FeedPoller, FetchResult
from ..config.feeds import TICKER_FEEDS, FeedSource, TickerFeedTemplate
from ..database.models import Vertical
from ..processing.pipeline import IngestionPipeline
from ..utils.exceptions import ValidationError
from ..utils.logging import get_logger_for_component


@dataclass
class TickerFetchResult:
    """Outcome of a ticker fetch."""

    ticker: str
    fetched: int = 0
    inserted: int = 0
    duplicates: int = 0
    failed: int = 0
    failed_sources: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "ticker": self.ticker,
            "fetched": self.fetched,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "failed": self.failed,
            "failed_sources": list(self.failed_sources),
        }


class TickerNewsFetcher:
    """Fetches and ingests news for a single stock symbol."""

    def __init__(
        self,
        poller: FeedPoller,
        pipeline: IngestionPipeline,
        templates: Sequence[TickerFeedTemplate] = TICKER_FEEDS,
        max_items: int = 10,
    ):
        self.poller = poller
        self.pipeline = pipeline
        self.templates = templates
        self.max_items = max_items
        self.logger = get_logger_for_component("ticker_fetcher")

    @staticmethod
    def normalize_ticker(ticker: Optional[str]) -> str:
        """Upper-case a ticker symbol.

        Raises:
            ValidationError: If the symbol is blank or malformed
        """
        symbol = (ticker or "").strip().upper()
        if not symbol or len(symbol) > 10 or not all(c.isalnum() or c in ".-" for c in symbol):
            raise ValidationError(f"Invalid ticker symbol: {ticker!r}", field_name="ticker")
        return symbol

    async def fetch(self, ticker: str) -> TickerFetchResult:
        """Fetch every ticker feed for ``ticker`` and ingest the entries."""
        symbol = self.normalize_ticker(ticker)
        result = TickerFetchResult(ticker=symbol)

        sources = [FeedSource(t.name, t.url_for(symbol)) for t in self.templates]

        async with self.poller.get_session() as session:
            fetches: List[FetchResult] = await asyncio.gather(
                *(
                    self.poller.fetch_source(
                        session,
                        source,
                        Vertical.STOCKS,
                        ticker=symbol,
                        max_items=self.max_items,
                        require_title_and_link=True,
                    )
                    for source in sources
                )
            )

        items = []
        for fetch in fetches:
            if not fetch.success:
                result.failed_sources.append(fetch.source)
            items.extend(fetch.items)

        result.fetched = len(items)
        batch = await self.pipeline.ingest_many(items)
        result.inserted = batch.inserted
        result.duplicates = batch.duplicates
        result.failed = batch.failed

        self.logger.info(
            f"Ticker {symbol}: {result.inserted} new of {result.fetched} fetched "
            f"({len(result.failed_sources)} sources failed)"
        )
        return result
