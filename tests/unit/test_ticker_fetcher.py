"""
Unit Tests for Ticker News Fetcher
==================================
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from pulsefeed.config.feeds import TICKER_FEEDS
from pulsefeed.database.models import Vertical
from pulsefeed.ingestion.feed_poller import FetchResult
from pulsefeed.ingestion.ticker_fetcher import TickerNewsFetcher
from pulsefeed.utils.exceptions import ValidationError


def _poller(results_by_source):
    poller = MagicMock()

    @asynccontextmanager
    async def session():
        yield MagicMock(name="session")

    async def fetch_source(session, source, vertical, **kwargs):
        return results_by_source[source.name](source, kwargs)

    poller.get_session = session
    poller.fetch_source = AsyncMock(side_effect=fetch_source)
    return poller


class TestNormalizeTicker:
    @pytest.mark.parametrize("raw,expected", [("aapl", "AAPL"), (" brk.b ", "BRK.B"), ("rds-a", "RDS-A")])
    def test_valid(self, raw, expected):
        assert TickerNewsFetcher.normalize_ticker(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "A" * 11, "AAPL;DROP", "A B"])
    def test_invalid(self, raw):
        with pytest.raises(ValidationError):
            TickerNewsFetcher.normalize_ticker(raw)


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetches_every_template_and_ingests(self, pipeline, repository, make_item):
        def ok(source, kwargs):
            item = make_item(
                title=f"{source.name} on AAPL",
                vertical=Vertical.STOCKS,
                source=source.name,
                ticker=kwargs["ticker"],
            )
            return FetchResult(source.name, Vertical.STOCKS, source.url, True, items=[item])

        def failing(source, kwargs):
            return FetchResult(source.name, Vertical.STOCKS, source.url, False, error="HTTP 503")

        handlers = {t.name: ok for t in TICKER_FEEDS}
        handlers["MarketWatch"] = failing
        poller = _poller(handlers)

        result = await TickerNewsFetcher(poller, pipeline, max_items=7).fetch("aapl")

        assert result.ticker == "AAPL"
        assert result.fetched == len(TICKER_FEEDS) - 1
        assert result.inserted == len(TICKER_FEEDS) - 1
        assert result.failed_sources == ["MarketWatch"]

        urls = [call.args[1].url for call in poller.fetch_source.await_args_list]
        assert all("AAPL" in url for url in urls)
        for call in poller.fetch_source.await_args_list:
            assert call.args[2] == Vertical.STOCKS
            assert call.kwargs["max_items"] == 7
            assert call.kwargs["require_title_and_link"] is True

        stored = repository.get_recent(fetch_limit=10, vertical=Vertical.STOCKS, ticker="AAPL")
        assert len(stored) == len(TICKER_FEEDS) - 1

    @pytest.mark.asyncio
    async def test_refetch_counts_duplicates(self, pipeline, make_item):
        item = make_item(title="Only story", url="https://u/only", vertical=Vertical.STOCKS, ticker="MSFT")

        def same(source, kwargs):
            return FetchResult(source.name, Vertical.STOCKS, source.url, True, items=[item])

        fetcher = TickerNewsFetcher(_poller({t.name: same for t in TICKER_FEEDS}), pipeline)

        result = await fetcher.fetch("MSFT")

        assert result.inserted == 1
        assert result.duplicates == len(TICKER_FEEDS) - 1
        assert result.to_dict()["ticker"] == "MSFT"

    @pytest.mark.asyncio
    async def test_invalid_ticker_fetches_nothing(self, pipeline):
        poller = _poller({})

        with pytest.raises(ValidationError):
            await TickerNewsFetcher(poller, pipeline).fetch("???")

        poller.fetch_source.assert_not_awaited()
