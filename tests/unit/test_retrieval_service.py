"""
Unit Tests for Retrieval Service
================================
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from pulsefeed.config.settings import RetrievalSettings
from pulsefeed.database.models import Vertical
from pulsefeed.services.retrieval_service import RetrievalService, fisher_yates_shuffle


@pytest.fixture
def now():
    return datetime.now(timezone.utc).replace(microsecond=0)


def _seed(repository, make_item, now, count, vertical=Vertical.CRYPTO, ticker=None, start_minutes=20):
    for i in range(count):
        repository.insert_item(
            make_item(
                title=f"{vertical.value}-{i}",
                vertical=vertical,
                ticker=ticker,
                published_at=now - timedelta(minutes=start_minutes + i),
            )
        )


class TestShuffle:
    def test_permutation(self):
        items = list(range(50))
        shuffled = fisher_yates_shuffle(list(items), random.Random(7))

        assert sorted(shuffled) == items
        assert shuffled != items

    def test_small_inputs(self):
        assert fisher_yates_shuffle([]) == []
        assert fisher_yates_shuffle([1]) == [1]


class TestClampLimit:
    @pytest.mark.parametrize(
        "requested,expected",
        [(None, 20), (0, 20), (-5, 20), (5, 5), (100, 100), (1000, 100)],
    )
    def test_bounds(self, repository, requested, expected):
        assert RetrievalService(repository).clamp_limit(requested) == expected


class TestGetRecent:
    def test_result_drawn_from_newest_window(self, repository, make_item, now):
        _seed(repository, make_item, now, 40)
        service = RetrievalService(repository, RetrievalSettings(overfetch_factor=3), rng=random.Random(1))

        newest = {item.title for item in repository.get_recent(fetch_limit=15)}
        result = service.get_recent(limit=5, now=now)

        assert len(result) == 5
        assert {item.title for item in result} <= newest

    def test_fewer_rows_than_limit(self, repository, make_item, now):
        _seed(repository, make_item, now, 3)

        result = RetrievalService(repository).get_recent(limit=10, now=now)

        assert len(result) == 3

    def test_delay_hides_recent_items(self, repository, make_item, now):
        repository.insert_item(make_item(title="fresh", published_at=now - timedelta(minutes=5)))
        repository.insert_item(make_item(title="boundary", published_at=now - timedelta(minutes=15)))
        repository.insert_item(make_item(title="old", published_at=now - timedelta(minutes=30)))
        service = RetrievalService(repository)

        delayed = {item.title for item in service.get_recent(limit=10, delay_minutes=15, now=now)}
        immediate = {item.title for item in service.get_recent(limit=10, delay_minutes=0, now=now)}

        assert delayed == {"boundary", "old"}
        assert immediate == {"fresh", "boundary", "old"}

    def test_every_result_respects_cutoff(self, repository, make_item, now):
        for minutes in range(0, 40, 2):
            repository.insert_item(make_item(published_at=now - timedelta(minutes=minutes)))

        result = RetrievalService(repository).get_recent(limit=50, delay_minutes=15, now=now)

        assert result
        assert all(item.published_at <= now - timedelta(minutes=15) for item in result)

    def test_vertical_and_ticker_filters(self, repository, make_item, now):
        _seed(repository, make_item, now, 4, vertical=Vertical.CRYPTO)
        _seed(repository, make_item, now, 2, vertical=Vertical.STOCKS, ticker="AAPL")
        service = RetrievalService(repository)

        crypto = service.get_recent(vertical=Vertical.CRYPTO, now=now)
        aapl = service.get_recent(vertical=Vertical.STOCKS, ticker="AAPL", now=now)

        assert len(crypto) == 4
        assert all(item.vertical == Vertical.CRYPTO for item in crypto)
        assert len(aapl) == 2
        assert all(item.ticker == "AAPL" for item in aapl)

    def test_repeat_requests_vary(self, repository, make_item, now):
        _seed(repository, make_item, now, 30)
        service = RetrievalService(repository, rng=random.Random(3))

        orders = {tuple(item.id for item in service.get_recent(limit=10, now=now)) for _ in range(5)}

        assert len(orders) > 1
