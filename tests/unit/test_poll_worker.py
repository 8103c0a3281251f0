"""
Unit Tests for Poll Worker
==========================

Tests for one poll-and-ingest cycle and the periodic loop.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from pulsefeed.config.settings import PollingSettings
from pulsefeed.ingestion.feed_poller import PollResult
from pulsefeed.scheduler.poll_worker import PollWorker


def _poller(result=None, side_effect=None):
    poller = MagicMock()
    poller.poll_all = AsyncMock(return_value=result or PollResult(), side_effect=side_effect)
    return poller


class TestPollWorker:
    def test_default_settings(self, pipeline):
        worker = PollWorker(_poller(), pipeline)

        assert worker.settings == PollingSettings()

    @pytest.mark.asyncio
    async def test_cycle_with_no_sources(self, pipeline):
        result = await PollWorker(_poller(), pipeline).run_cycle()

        assert result.sources == 0
        assert result.failed_sources == []
        assert result.ingest.received == 0

    @pytest.mark.asyncio
    async def test_run_forever_survives_failed_cycle(self, pipeline):
        poller = _poller(side_effect=RuntimeError("feed catalogue unavailable"))
        worker = PollWorker(poller, pipeline, PollingSettings.model_construct(interval_seconds=0.01))
        stop_event = asyncio.Event()

        task = asyncio.create_task(worker.run_forever(stop_event))
        for _ in range(100):
            if poller.poll_all.await_count >= 2:
                break
            await asyncio.sleep(0.01)
        stop_event.set()

        await asyncio.wait_for(task, timeout=1)
        assert poller.poll_all.await_count >= 2
        assert task.exception() is None
