"""
Runtime Services
================

Builds the long-lived service graph once at startup. The duplicate gate (and
with it the in-memory LRU cache and counters) lives here and is shared by the
poll worker, the ticker fetcher and the API.
"""

from dataclasses import dataclass
from typing import Any, Optional

from .ai.groq_analyzer import GroqAnalyzer
from .config.settings import PulseFeedSettings, get_settings
from .database.connection import DatabaseConnection
from .database.schema import DatabaseSchema
from .dedup.duplicate_gate import DuplicateGate
from .dedup.redis_client import create_redis_client
from .ingestion.feed_poller import FeedPoller
from .ingestion.ticker_fetcher import TickerNewsFetcher
from .processing.pipeline import IngestionPipeline
from .scheduler.enrichment_worker import EnrichmentWorker
from .scheduler.poll_worker import PollWorker
from .services.enrichment_service import EnrichmentService
from .services.retrieval_service import RetrievalService
from .services.tier_service import TierService
from .storage.news_repository import NewsRepository
from .utils.logging import get_logger_for_component

logger = get_logger_for_component("runtime")


@dataclass
class Services:
    """Container for the application's shared components."""

    settings: PulseFeedSettings
    db: DatabaseConnection
    redis: Any
    gate: DuplicateGate
    repository: NewsRepository
    pipeline: IngestionPipeline
    poller: FeedPoller
    ticker_fetcher: TickerNewsFetcher
    retrieval: RetrievalService
    tiers: TierService
    enrichment: EnrichmentService
    analyzer: GroqAnalyzer
    poll_worker: PollWorker
    enrichment_worker: EnrichmentWorker

    async def close(self) -> None:
        """Release network clients and pooled connections."""
        await self.tiers.close()
        close = getattr(self.redis, "aclose", None) or getattr(self.redis, "close", None)
        if close is not None:
            await close()
        self.db.close_all_connections()
        logger.info("Services closed")


def build_services(
    settings: Optional[PulseFeedSettings] = None,
    redis_client: Optional[Any] = None,
    analyzer: Optional[GroqAnalyzer] = None,
    poller: Optional[FeedPoller] = None,
) -> Services:
    """Build the service graph.

    Args:
        settings: Application settings (default: global settings)
        redis_client: Durable dedup store (default: client built from settings)
        analyzer: Analysis provider (default: Groq analyzer from settings)
        poller: Feed poller (default: built from settings)

    Returns:
        Wired services
    """
    settings = settings or get_settings()

    DatabaseSchema(settings.database.path).create_tables()
    db = DatabaseConnection(settings.database.path, settings.database.pool_size)

    redis = redis_client if redis_client is not None else create_redis_client(settings.redis)
    gate = DuplicateGate.from_settings(redis, settings.dedup)

    repository = NewsRepository(db)
    pipeline = IngestionPipeline(gate, repository)
    poller = poller or FeedPoller.from_settings(settings)
    analyzer = analyzer or GroqAnalyzer.from_settings(settings)

    services = Services(
        settings=settings,
        db=db,
        redis=redis,
        gate=gate,
        repository=repository,
        pipeline=pipeline,
        poller=poller,
        ticker_fetcher=TickerNewsFetcher(
            poller, pipeline, max_items=settings.polling.ticker_max_items
        ),
        retrieval=RetrievalService(repository, settings.retrieval),
        tiers=TierService(settings.tiers),
        enrichment=EnrichmentService(repository),
        analyzer=analyzer,
        poll_worker=PollWorker(poller, pipeline, settings.polling),
        enrichment_worker=EnrichmentWorker(repository, analyzer, settings.enrichment),
    )

    logger.info(
        f"Services built (db={settings.database.path}, "
        f"analysis={'enabled' if analyzer.is_available() else 'disabled'})"
    )
    return services
