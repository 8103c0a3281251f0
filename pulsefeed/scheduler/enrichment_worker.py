"""
Enrichment Worker
=================

Periodic sweep that analyses flagged items. Calls are paced and bounded by
a timeout; a failed item keeps its flag and is retried on a later sweep.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from ..ai.groq_analyzer import GroqAnalyzer
from ..config.settings import EnrichmentSettings
from ..storage.news_repository import NewsRepository
from ..utils.exceptions import DatabaseError
from ..utils.logging import PerformanceLogger, get_logger_for_component


@dataclass
class SweepResult:
    """Counters for one enrichment sweep."""

    candidates: int = 0
    enriched: int = 0
    failed: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "candidates": self.candidates,
            "enriched": self.enriched,
            "failed": self.failed,
            "skipped": self.skipped,
        }


class EnrichmentWorker:
    """Analyses requested (and optionally backlog) items in batches."""

    def __init__(
        self,
        repository: NewsRepository,
        analyzer: GroqAnalyzer,
        settings: Optional[EnrichmentSettings] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.repository = repository
        self.analyzer = analyzer
        self.settings = settings or EnrichmentSettings()
        self._sleep = sleep
        self.logger = get_logger_for_component("enrichment_worker")

    async def run_sweep(self) -> SweepResult:
        """Analyse one batch of pending items."""
        result = SweepResult()

        if not self.analyzer.is_available():
            self.logger.debug("Analyzer unavailable, sweep skipped")
            return result

        candidates = self.repository.get_enrichment_candidates(
            self.settings.batch_size, include_backlog=self.settings.process_backlog
        )
        result.candidates = len(candidates)
        if not candidates:
            return result

        delay = self.settings.call_delay_ms / 1000.0

        with PerformanceLogger(self.logger, "enrichment sweep", items=len(candidates)):
            for index, item in enumerate(candidates):
                if index > 0 and delay > 0:
                    await self._sleep(delay)

                if not self.analyzer.is_available():
                    result.skipped += len(candidates) - index
                    self.logger.warning("Analyzer became unavailable, ending sweep early")
                    break

                try:
                    analysis = await asyncio.wait_for(
                        self.analyzer.analyze(item.to_analysis_request()),
                        timeout=self.settings.call_timeout,
                    )
                except asyncio.TimeoutError:
                    self.logger.warning(
                        f"Analysis of item {item.id} timed out after {self.settings.call_timeout}s"
                    )
                    analysis = None
                except Exception as e:
                    self.logger.error(f"Analysis of item {item.id} failed: {e}", exc_info=True)
                    analysis = None

                if analysis is None:
                    result.failed += 1
                    continue

                try:
                    saved = self.repository.save_analysis(item.id, analysis)
                except DatabaseError as e:
                    self.logger.error(f"Failed to store analysis for item {item.id}: {e}")
                    result.failed += 1
                    continue

                if saved:
                    result.enriched += 1
                else:
                    result.skipped += 1

        self.logger.info(
            f"Enrichment sweep: {result.enriched} enriched, {result.failed} failed, "
            f"{result.skipped} skipped of {result.candidates}"
        )
        return result

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Sweep every ``sweep_interval_seconds`` until ``stop_event`` is set."""
        self.logger.info(
            f"Enrichment worker started (interval={self.settings.sweep_interval_seconds}s, "
            f"backlog={self.settings.process_backlog})"
        )
        while not stop_event.is_set():
            try:
                await self.run_sweep()
            except Exception as e:
                self.logger.error(f"Enrichment sweep failed: {e}", exc_info=True)

            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=self.settings.sweep_interval_seconds
                )
            except asyncio.TimeoutError:
                continue
        self.logger.info("Enrichment worker stopped")
