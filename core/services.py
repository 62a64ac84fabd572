"""
Service composition.

The process entry point (API lifespan or CLI script) builds one ``Services``
graph, passes it to whatever needs it, and calls ``aclose()`` on exit.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional
import logging

from analytics.runner import AnalyticsRunner
from core.config import Settings
from core.database import Database
from events.bus import EventBus
from events.dispatcher import BACKFILL_PRICE_HISTORY, INGEST_PRICE_HISTORY, JobDispatcher
from ingestion.extractors.price_history_extractor import PriceHistoryClient
from ingestion.runner import PriceHistoryIngestionRunner
from ingestion.scheduler import IngestionScheduler
from schemas.events import ANALYTICS_COMPLETED, INGESTION_COMPLETED

logger = logging.getLogger(__name__)

REQUIRED_JOBS = (INGEST_PRICE_HISTORY, BACKFILL_PRICE_HISTORY)


@dataclass
class Services:
    settings: Settings
    database: Database
    event_bus: EventBus
    client: PriceHistoryClient
    ingestion_runner: PriceHistoryIngestionRunner
    analytics_runner: AnalyticsRunner
    dispatcher: JobDispatcher
    scheduler: Optional[IngestionScheduler] = None

    async def aclose(self):
        if self.scheduler is not None:
            self.scheduler.stop()
        await self.client.aclose()
        await self.database.dispose()


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def build_dispatcher(ingestion_runner: PriceHistoryIngestionRunner) -> JobDispatcher:
    async def ingest_job(payload: Dict[str, Any]):
        return await ingestion_runner.ingest(_parse_date(payload.get("date")))

    async def backfill_job(payload: Dict[str, Any]):
        return await ingestion_runner.backfill(
            date.fromisoformat(payload["start"]),
            date.fromisoformat(payload["end"])
        )

    dispatcher = JobDispatcher({
        INGEST_PRICE_HISTORY: ingest_job,
        BACKFILL_PRICE_HISTORY: backfill_job,
    })
    dispatcher.validate(REQUIRED_JOBS)
    return dispatcher


def build_services(
    settings: Settings,
    database: Optional[Database] = None,
    client: Optional[PriceHistoryClient] = None,
    with_scheduler: Optional[bool] = None
) -> Services:
    """Wire the object graph; ``database`` and ``client`` may be injected"""
    database = database or Database(
        settings.DATABASE_URL,
        echo=settings.ENVIRONMENT == "development" and settings.LOG_LEVEL.upper() == "DEBUG",
        pool_pre_ping=True
    )
    client = client or PriceHistoryClient(
        base_url=settings.PRICE_HISTORY_BASE_URL,
        max_retries=settings.MAX_RETRIES,
        retry_delay=settings.RETRY_DELAY,
        timeout=settings.REQUEST_TIMEOUT,
    )

    event_bus = EventBus([INGESTION_COMPLETED, ANALYTICS_COMPLETED])

    ingestion_runner = PriceHistoryIngestionRunner(
        database=database,
        client=client,
        event_bus=event_bus,
        source=settings.PRICE_HISTORY_SOURCE,
        batch_size=settings.ETL_BATCH_SIZE,
    )

    analytics_runner = AnalyticsRunner(
        database=database,
        event_bus=event_bus,
        source=settings.ANALYTICS_SOURCE,
        history_days=settings.ANALYTICS_HISTORY_DAYS,
        min_history_days=settings.MIN_HISTORY_DAYS,
        top_count=settings.TOP_FLIP_RECOMMENDATIONS_COUNT,
        batch_size=settings.ANALYTICS_BATCH_SIZE,
    )
    analytics_runner.subscribe(event_bus)

    dispatcher = build_dispatcher(ingestion_runner)

    if with_scheduler is None:
        with_scheduler = settings.SCHEDULER_ENABLED
    scheduler = None
    if with_scheduler:
        scheduler = IngestionScheduler(
            dispatcher,
            hour=settings.INGEST_CRON_HOUR,
            minute=settings.INGEST_CRON_MINUTE,
        )

    logger.info("Services composed")
    return Services(
        settings=settings,
        database=database,
        event_bus=event_bus,
        client=client,
        ingestion_runner=ingestion_runner,
        analytics_runner=analytics_runner,
        dispatcher=dispatcher,
        scheduler=scheduler,
    )
