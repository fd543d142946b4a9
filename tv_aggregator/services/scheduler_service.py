import logging
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from tv_aggregator.services.pipeline_service import ChannelPipeline


logger = logging.getLogger(__name__)

class RefreshScheduler:
    """Scheduler for periodic pipeline refreshes"""

    def __init__(self, pipeline: ChannelPipeline, cron: str | None):
        self.pipeline = pipeline
        self.cron = cron
        self.scheduler: AsyncIOScheduler | None = None

    async def _refresh_job(self) -> None:
        """Background job that runs a full pipeline refresh"""
        logger.info("Scheduled pipeline refresh triggered")
        try:
            await self.pipeline.init("scheduled")
        except Exception as e:
            logger.error(f"Exception in scheduled refresh: {e}", exc_info=True)

    def start(self) -> None:
        """Start the scheduler with the refresh job"""
        if not self.cron:
            logger.info("No refresh schedule configured - refreshes are manual only")
            return

        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        try:
            trigger = CronTrigger.from_crontab(self.cron, timezone='UTC')
        except (ValueError, KeyError) as exc:
            logger.error(f"Invalid cron expression '{self.cron}': {exc}")
            raise

        self.scheduler = AsyncIOScheduler(timezone='UTC')
        self.scheduler.add_job(
            self._refresh_job,
            trigger=trigger,
            id='pipeline_refresh',
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(f"Scheduler started. Next refresh: {next_time.isoformat() if next_time else 'unknown'}")

    def shutdown(self) -> None:
        """Shutdown the scheduler"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")
            self.scheduler = None

    @property
    def running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled refresh time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job('pipeline_refresh')
        return job.next_run_time if job else None
