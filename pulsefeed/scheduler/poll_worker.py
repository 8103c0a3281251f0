"""
Poll Worker
===========

Drives the periodic poll cycle: fetch every vertical, then ingest the
results through the pipeline.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config.settings import PollingSettings
from ..ingestion.feed_poller import FeedPoller
from ..processing.pipeline import IngestBatchResult, IngestionPipeline
from ..utils.logging import PerformanceLogger, get_logger_for_component


@dataclass
class CycleResult:
    """Summary of one poll-and-ingest cycle."""

    sources: int = 0
    failed_sources: List[str] = field(default_factory=list)
    ingest: IngestBatchResult = field(default_factory=IngestBatchResult)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sources": self.sources,
            "failed_sources": list(self.failed_sources),
            **self.ingest.to_dict(),
        }


class PollWorker:
    """Periodic feed poll feeding the ingestion pipeline."""

    def __init__(
        self,
        poller: FeedPoller,
        pipeline: IngestionPipeline,
        settings: Optional[PollingSettings] = None,
    ):
        self.poller = poller
        self.pipeline = pipeline
        self.settings = settings or PollingSettings()
        self.logger = get_logger_for_component("poll_worker")

    async def run_cycle(self) -> CycleResult:
        with PerformanceLogger(self.logger, "poll cycle"):
            poll = await self.poller.poll_all()
            batch = await self.pipeline.ingest_many(poll.items)

        return CycleResult(
            sources=len(poll.results),
            failed_sources=poll.failed_sources,
            ingest=batch,
        )

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Poll every ``interval_seconds`` until ``stop_event`` is set."""
        self.logger.info(f"Poll worker started (interval={self.settings.interval_seconds}s)")
        while not stop_event.is_set():
            try:
                await self.run_cycle()
            except Exception as e:
                self.logger.error(f"Poll cycle failed: {e}", exc_info=True)

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.settings.interval_seconds)
            except asyncio.TimeoutError:
                continue
        self.logger.info("Poll worker stopped")
