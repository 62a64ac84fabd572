import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from core.exceptions import PipelineError
from events.dispatcher import INGEST_PRICE_HISTORY, JobDispatcher

logger = logging.getLogger(__name__)


class IngestionScheduler:
    """Daily cron trigger (UTC) that dispatches the price-history ingest job"""

    def __init__(self, dispatcher: JobDispatcher, hour: int = 5, minute: int = 0):
        self.dispatcher = dispatcher
        self.hour = hour
        self.minute = minute
        self.scheduler = AsyncIOScheduler(timezone="UTC")

    async def run_ingest_job(self):
        """Ingest yesterday's snapshot"""
        logger.info("Scheduler: Starting daily price history ingestion")
        try:
            result = await self.dispatcher.dispatch(INGEST_PRICE_HISTORY, {})
            logger.info(f"Scheduler: Ingestion finished with status {result.get('status')}")
        except PipelineError as e:
            logger.error(
                f"Scheduler: Ingestion job failed - {e.message}",
                extra={"error_context": e.to_dict()}
            )
        except Exception as e:
            logger.exception(f"Scheduler: Ingestion job failed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_ingest_job,
            trigger=CronTrigger(hour=self.hour, minute=self.minute, timezone="UTC"),
            id="ingest_price_history",
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(f"Ingestion scheduler started (daily at {self.hour:02d}:{self.minute:02d} UTC)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Ingestion scheduler stopped")
