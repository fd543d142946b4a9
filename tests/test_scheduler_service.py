"""
Tests for the periodic refresh scheduler.
"""
from datetime import timedelta

import pytest

from tv_aggregator.services.scheduler_service import RefreshScheduler


class CountingPipeline:
    def __init__(self):
        self.reasons: list[str] = []

    async def init(self, reason: str = "manual") -> int:
        self.reasons.append(reason)
        return len(self.reasons)


class TestRefreshScheduler:
    """Test scheduler lifecycle and the refresh job."""

    def test_without_cron_nothing_is_scheduled(self):
        scheduler = RefreshScheduler(CountingPipeline(), None)

        scheduler.start()

        assert not scheduler.running
        assert scheduler.get_next_run_time() is None

    @pytest.mark.asyncio
    async def test_cron_schedules_refresh(self):
        scheduler = RefreshScheduler(CountingPipeline(), "0 3 * * *")

        scheduler.start()
        try:
            assert scheduler.running
            next_run = scheduler.get_next_run_time()
            assert next_run.hour == 3
            assert next_run.utcoffset() == timedelta(0)
        finally:
            scheduler.shutdown()

        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_job_runs_pipeline(self):
        pipeline = CountingPipeline()
        scheduler = RefreshScheduler(pipeline, "0 3 * * *")

        await scheduler._refresh_job()

        assert pipeline.reasons == ["scheduled"]
