"""
Feed Poller
===========

Fetches the configured RSS sources of every vertical and normalizes their
newest entries into ``CanonicalNewsItem`` objects.

Verticals are polled concurrently; the sources of one vertical are fetched
one after another with a short pause between them so no upstream sees a
burst. A failing source yields no items and never aborts the cycle.
"""

import asyncio
import calendar
import ssl
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

import aiohttp
import certifi
import feedparser

from .content_cleaner import ContentCleaner
from ..config.feeds import RSS_FEEDS, FeedSource
from ..config.settings import PulseFeedSettings
from ..database.models import CanonicalNewsItem, Vertical
from ..utils.exceptions import ErrorCode, FeedFetchError
from ..utils.logging import get_logger_for_component

USER_AGENT = "PulseFeed/1.0 (+https://github.com/pulsefeed/pulsefeed)"
UNTITLED = "Untitled"

# Entry fields tried in order for the item body
CONTENT_FIELDS = ("snippet", "summary", "description", "content", "subtitle")
DATE_FIELDS = ("published_parsed", "updated_parsed", "created_parsed")


@dataclass
class FetchResult:
    """Outcome of fetching one feed."""

    source: str
    vertical: Vertical
    feed_url: str
    success: bool
    items: List[CanonicalNewsItem] = field(default_factory=list)
    error: Optional[str] = None
    fetch_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def item_count(self) -> int:
        return len(self.items)


@dataclass
class PollResult:
    """Outcome of one poll cycle across all verticals."""

    results: List[FetchResult] = field(default_factory=list)

    @property
    def items(self) -> List[CanonicalNewsItem]:
        return [item for result in self.results for item in result.items]

    @property
    def failed_sources(self) -> List[str]:
        return [f"{r.vertical.value}/{r.source}" for r in self.results if not r.success]

    def items_by_vertical(self) -> Dict[Vertical, List[CanonicalNewsItem]]:
        grouped: Dict[Vertical, List[CanonicalNewsItem]] = {}
        for result in self.results:
            grouped.setdefault(result.vertical, []).extend(result.items)
        return grouped


class FeedPoller:
    """Polls RSS sources per vertical and produces canonical news items."""

    def __init__(
        self,
        feeds: Optional[Mapping[Vertical, Sequence[FeedSource]]] = None,
        max_items_per_source: int = 5,
        source_delay_ms: int = 500,
        timeout: int = 30,
        max_connections: int = 20,
        cleaner: Optional[ContentCleaner] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize feed poller.

        Args:
            feeds: Sources per vertical (default: built-in catalogue)
            max_items_per_source: Most recent entries taken from each feed
            source_delay_ms: Pause between consecutive sources of one vertical
            timeout: Request timeout in seconds
            max_connections: Connection pool size
            cleaner: HTML cleaner for entry bodies
            sleep: Awaitable sleep, injectable for tests
        """
        self.feeds = feeds if feeds is not None else RSS_FEEDS
        self.max_items_per_source = max_items_per_source
        self.source_delay = source_delay_ms / 1000.0
        self.timeout = timeout
        self.max_connections = max_connections
        self.cleaner = cleaner or ContentCleaner()
        self._sleep = sleep
        self.logger = get_logger_for_component("feed_poller")

        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @classmethod
    def from_settings(cls, settings: PulseFeedSettings, **kwargs) -> "FeedPoller":
        return cls(
            max_items_per_source=settings.polling.max_items_per_source,
            source_delay_ms=settings.polling.source_delay_ms,
            timeout=settings.limits.request_timeout,
            max_connections=settings.limits.max_connections,
            **kwargs,
        )

    @asynccontextmanager
    async def get_session(self):
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(
            ssl=self.ssl_context,
            limit=self.max_connections,
            limit_per_host=5,
        )

        timeout = aiohttp.ClientTimeout(total=self.timeout)

        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        }

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch_document(self, session: aiohttp.ClientSession, url: str) -> str:
        """Download a feed document.

        Raises:
            FeedFetchError: On non-200 responses
        """
        async with session.get(url) as response:
            if response.status != 200:
                raise FeedFetchError(
                    f"HTTP {response.status}: {response.reason}",
                    feed_url=url,
                    error_code=ErrorCode.FEED_HTTP_ERROR,
                )
            return await response.text()

    async def fetch_source(
        self,
        session: aiohttp.ClientSession,
        source: FeedSource,
        vertical: Vertical,
        ticker: Optional[str] = None,
        max_items: Optional[int] = None,
        require_title_and_link: bool = False,
    ) -> FetchResult:
        """Fetch and parse one feed; every failure is folded into the result."""
        start_time = datetime.now(timezone.utc)

        try:
            document = await self.fetch_document(session, source.url)
            items = self.parse_entries(
                document,
                source_name=source.name,
                vertical=vertical,
                ticker=ticker,
                max_items=max_items or self.max_items_per_source,
                require_title_and_link=require_title_and_link,
                feed_url=source.url,
            )

            self.logger.info(
                f"Fetched {len(items)} items from {source.name} ({vertical.value}) "
                f"in {(datetime.now(timezone.utc) - start_time).total_seconds():.2f}s",
                extra={"source": source.name, "vertical": vertical.value},
            )
            return FetchResult(
                source=source.name,
                vertical=vertical,
                feed_url=source.url,
                success=True,
                items=items,
                fetch_time=start_time,
            )

        except asyncio.TimeoutError:
            error_msg = f"Request timeout after {self.timeout}s"
            self.logger.warning(f"Feed fetch timeout for {source.name}: {error_msg}")
        except FeedFetchError as e:
            error_msg = str(e)
            self.logger.warning(f"Feed fetch failed for {source.name}: {error_msg}")
        except Exception as e:
            error_msg = f"Fetch error: {e}"
            self.logger.error(
                f"Feed fetch failed for {source.name}: {error_msg}", exc_info=True
            )

        return FetchResult(
            source=source.name,
            vertical=vertical,
            feed_url=source.url,
            success=False,
            error=error_msg,
            fetch_time=start_time,
        )

    def parse_entries(
        self,
        document: str,
        source_name: str,
        vertical: Vertical,
        ticker: Optional[str] = None,
        max_items: Optional[int] = None,
        require_title_and_link: bool = False,
        feed_url: Optional[str] = None,
    ) -> List[CanonicalNewsItem]:
        """Parse a feed document into canonical items.

        Raises:
            FeedFetchError: If the document is malformed and holds no entries
        """
        feed_data = feedparser.parse(document)

        if getattr(feed_data, "bozo", False) and not feed_data.entries:
            reason = getattr(feed_data, "bozo_exception", None) or "Invalid XML structure"
            raise FeedFetchError(
                f"Feed parse error: {reason}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_PARSE_ERROR,
            )

        limit = max_items or self.max_items_per_source
        fetched_at = datetime.now(timezone.utc)
        items = []

        for entry in feed_data.entries[:limit]:
            raw_title = (entry.get("title") or "").strip()
            link = (entry.get("link") or "").strip()

            if require_title_and_link and not (raw_title and link):
                continue

            items.append(
                CanonicalNewsItem(
                    source=source_name,
                    vertical=vertical,
                    ticker=ticker,
                    title=raw_title or UNTITLED,
                    content=self._extract_content(entry),
                    url=link,
                    published_at=self._parse_date(entry) or fetched_at,
                )
            )

        return items

    def _extract_content(self, entry: Any) -> str:
        """Return the first non-empty body field, cleaned to plain text."""
        for field_name in CONTENT_FIELDS:
            raw = entry.get(field_name)

            # Atom content arrives as a list of {"value": ...} dicts
            if isinstance(raw, list):
                raw = raw[0] if raw else None
            if isinstance(raw, dict):
                raw = raw.get("value")

            if raw and isinstance(raw, str):
                cleaned = self.cleaner.clean(raw)
                if cleaned:
                    return cleaned

        return ""

    def _parse_date(self, entry: Any) -> Optional[datetime]:
        for field_name in DATE_FIELDS:
            parsed = entry.get(field_name)
            if parsed:
                try:
                    return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
                except (TypeError, ValueError, OverflowError):
                    continue
        return None

    async def poll_vertical(
        self, session: aiohttp.ClientSession, vertical: Vertical
    ) -> List[FetchResult]:
        """Fetch every source of one vertical in order, pausing between them."""
        sources = self.feeds.get(vertical, ())
        results = []

        for index, source in enumerate(sources):
            if index > 0 and self.source_delay > 0:
                await self._sleep(self.source_delay)
            results.append(await self.fetch_source(session, source, vertical))

        return results

    async def poll_all(self, session: Optional[aiohttp.ClientSession] = None) -> PollResult:
        """Run one poll cycle over all verticals concurrently."""
        if session is None:
            async with self.get_session() as own_session:
                return await self.poll_all(own_session)

        verticals = list(self.feeds.keys())
        per_vertical = await asyncio.gather(
            *(self.poll_vertical(session, vertical) for vertical in verticals)
        )

        poll_result = PollResult(
            results=[result for results in per_vertical for result in results]
        )

        self.logger.info(
            f"Poll cycle fetched {len(poll_result.items)} items from "
            f"{len(poll_result.results)} sources "
            f"({len(poll_result.failed_sources)} failed)"
        )
        return poll_result
