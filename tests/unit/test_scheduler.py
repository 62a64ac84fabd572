import pytest
from unittest.mock import AsyncMock, patch
from core.exceptions import NetworkError
from events.dispatcher import INGEST_PRICE_HISTORY, JobDispatcher
from ingestion.scheduler import IngestionScheduler


def test_scheduler_initialization():
    scheduler = IngestionScheduler(JobDispatcher(), hour=6, minute=30)

    assert scheduler.scheduler is not None
    assert str(scheduler.scheduler.timezone) == "UTC"
    assert (scheduler.hour, scheduler.minute) == (6, 30)


@pytest.mark.asyncio
async def test_scheduler_job_execution():
    handler = AsyncMock(return_value={"status": "completed"})
    scheduler = IngestionScheduler(JobDispatcher({INGEST_PRICE_HISTORY: handler}))

    await scheduler.run_ingest_job()

    handler.assert_awaited_once_with({})


@pytest.mark.asyncio
async def test_scheduler_job_failure_is_contained():
    handler = AsyncMock(side_effect=NetworkError("provider down"))
    scheduler = IngestionScheduler(JobDispatcher({INGEST_PRICE_HISTORY: handler}))

    await scheduler.run_ingest_job()

    handler.assert_awaited_once()


@pytest.mark.asyncio
async def test_scheduler_registers_daily_cron_job():
    scheduler = IngestionScheduler(JobDispatcher(), hour=5, minute=15)

    with patch.object(scheduler.scheduler, "start") as mock_start:
        scheduler.start()

    job = scheduler.scheduler.get_job("ingest_price_history")
    assert job is not None
    assert "hour='5'" in str(job.trigger)
    assert "minute='15'" in str(job.trigger)
    mock_start.assert_called_once()

    scheduler.stop()
