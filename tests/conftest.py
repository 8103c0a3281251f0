"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for PulseFeed tests.

Redis is replaced by ``FakeRedis``, an in-memory store honouring key
expiry against a controllable clock that the duplicate gate shares, so TTL
behaviour can be tested without sleeping.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["PULSEFEED_DEBUG"] = "true"
os.environ.pop("PULSEFEED_AI__GROQ_API_KEY", None)


# ============================================================================
# Durable Store Fakes
# ============================================================================


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """In-memory subset of the asyncio Redis client used by the duplicate gate."""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.clock = clock or FakeClock()
        self.data: Dict[str, Tuple[str, Optional[float]]] = {}
        self.fail = False
        self.exists_calls = 0
        self.set_calls = 0
        self.closed = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    def _live(self, key: str) -> bool:
        entry = self.data.get(key)
        if entry is None:
            return False
        _, expires_at = entry
        if expires_at is not None and self.clock() >= expires_at:
            del self.data[key]
            return False
        return True

    async def exists(self, *keys: str) -> int:
        self._check()
        self.exists_calls += 1
        return sum(1 for key in keys if self._live(key))

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self._check()
        self.set_calls += 1
        expires_at = self.clock() + ex if ex else None
        self.data[key] = (value, expires_at)
        return True

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self.data[key][0] if self._live(key) else None

    async def ttl(self, key: str) -> int:
        if not self._live(key):
            return -2
        expires_at = self.data[key][1]
        return -1 if expires_at is None else int(expires_at - self.clock())

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_redis(fake_clock):
    return FakeRedis(fake_clock)


@pytest.fixture
def gate(fake_redis, fake_clock):
    """Duplicate gate over the fake store with default capacity and TTL."""
    from pulsefeed.dedup.duplicate_gate import DuplicateGate

    return DuplicateGate(fake_redis, capacity=1000, ttl_seconds=86400, clock=fake_clock)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def test_database(tmp_path):
    """Path to a fresh database with the schema applied."""
    from pulsefeed.database.schema import DatabaseSchema

    db_path = tmp_path / "pulsefeed_test.db"
    DatabaseSchema(str(db_path)).create_tables()
    return str(db_path)


@pytest.fixture
def db_connection(test_database):
    """Create a database connection manager for testing."""
    from pulsefeed.database.connection import DatabaseConnection

    connection = DatabaseConnection(test_database, pool_size=2)
    yield connection

    # Cleanup connections
    connection.close_all_connections()


@pytest.fixture
def repository(db_connection):
    from pulsefeed.storage.news_repository import NewsRepository

    return NewsRepository(db_connection)


@pytest.fixture
def pipeline(gate, repository):
    from pulsefeed.processing.pipeline import IngestionPipeline

    return IngestionPipeline(gate, repository)


# ============================================================================
# Settings and Sample Data
# ============================================================================


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at temporary paths with analysis disabled."""
    from pulsefeed.config.settings import (
        AISettings,
        DatabaseSettings,
        LoggingSettings,
        PulseFeedSettings,
        TierSettings,
    )

    return PulseFeedSettings(
        database=DatabaseSettings(path=str(tmp_path / "app.db"), pool_size=2),
        logging=LoggingSettings(file_path=None, console_logging=False),
        ai=AISettings(groq_api_key=None),
        tiers=TierSettings(premium_user_ids=["premium-user"], pro_user_ids=["pro-user"]),
    )


@pytest.fixture
def make_item():
    """Factory for canonical news items."""
    from pulsefeed.database.models import CanonicalNewsItem, Vertical

    counter = {"n": 0}

    def _make(
        title: Optional[str] = None,
        url: Optional[str] = None,
        vertical: Vertical = Vertical.CRYPTO,
        source: str = "Test Source",
        ticker: Optional[str] = None,
        published_at: Optional[datetime] = None,
        content: str = "Sample content",
    ) -> CanonicalNewsItem:
        counter["n"] += 1
        n = counter["n"]
        return CanonicalNewsItem(
            source=source,
            vertical=vertical,
            ticker=ticker,
            title=title or f"Headline {n}",
            url=url if url is not None else f"https://example.com/news/{n}",
            content=content,
            published_at=published_at or datetime.now(timezone.utc) - timedelta(hours=1),
        )

    return _make


@pytest.fixture
def sample_analysis():
    from pulsefeed.database.models import AIAnalysis

    return AIAnalysis.model_validate(
        {
            "sentiment": {
                "label": "bullish",
                "confidence": 0.82,
                "reasoning": "ETF approval broadens institutional demand.",
            },
            "price_impact": {
                "level": "high",
                "direction": "up",
                "reasoning": "Inflows typically follow approvals.",
            },
            "summary": {
                "tldr": "Regulators approved a spot ETF.",
                "key_points": ["Approval granted", "Trading starts Monday"],
                "entities": ["SEC", "Bitcoin"],
            },
        }
    )
