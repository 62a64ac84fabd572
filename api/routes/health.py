"""
Health check endpoint with database and latest run status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db, get_services
from core.services import Services
from ingestion.run_tracker import IngestionRunTracker
from schemas.api import HealthCheckResponse, IngestionRunResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Latest run of each tracked source (ingestion, analytics)
    """
    db_connected = False
    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    latest_runs = []
    if db_connected:
        tracker = IngestionRunTracker(db)
        for source in (services.settings.PRICE_HISTORY_SOURCE, services.settings.ANALYTICS_SOURCE):
            try:
                runs = await tracker.list_runs(source=source, limit=1)
            except Exception as e:
                logger.error(f"Failed to fetch latest run for {source}: {str(e)}")
                continue
            latest_runs.extend(IngestionRunResponse.model_validate(run) for run in runs)

    return HealthCheckResponse(
        database_connected=db_connected,
        latest_runs=latest_runs
    )
