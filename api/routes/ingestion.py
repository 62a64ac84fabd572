"""
Ingestion trigger endpoints and run listing
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from api.dependencies import get_db, get_services
from api.middleware import record_run
from core.exceptions import (
    FetchError,
    PipelineError,
    ResourceNotFoundError,
)
from core.services import Services
from events.dispatcher import BACKFILL_PRICE_HISTORY, INGEST_PRICE_HISTORY
from ingestion.run_tracker import IngestionRunTracker
from schemas.api import (
    BackfillRequest,
    BackfillResponse,
    ErrorResponse,
    IngestionRunListResponse,
    IngestionRunResponse,
    IngestRequest,
    IngestResultResponse,
)
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Ingestion"])


def _status_for(error: PipelineError) -> int:
    if isinstance(error, ResourceNotFoundError):
        return 404
    if isinstance(error, FetchError):
        return 502
    return 500


@router.post(
    "/ingest",
    response_model=IngestResultResponse,
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def trigger_ingest(
    request: Request,
    body: Optional[IngestRequest] = None,
    services: Services = Depends(get_services)
):
    """Ingest one date (yesterday, UTC, when no date is given)"""
    request_id = getattr(request.state, "request_id", "-")
    target = body.date if body and body.date else None
    payload = {"date": target.isoformat()} if target else {}

    logger.info(f"[{request_id}] POST /ingest date={payload.get('date', 'default')}")

    try:
        result = await services.dispatcher.dispatch(INGEST_PRICE_HISTORY, payload)
    except PipelineError as e:
        logger.error(f"[{request_id}] Ingestion failed: {e.message}", extra={"error_context": e.to_dict()})
        record_run(request, date=e.context.get("date"), status="failed", error=type(e).__name__)
        raise HTTPException(
            status_code=_status_for(e),
            detail=ErrorResponse(
                error=type(e).__name__,
                detail=e.message,
                context=e.context
            ).model_dump(mode="json")
        )

    record_run(request, run_id=result.get("run_id"), date=result["date"], status=result["status"])
    return IngestResultResponse(**result)


@router.post("/ingest/backfill", response_model=BackfillResponse)
async def trigger_backfill(
    request: Request,
    body: BackfillRequest,
    services: Services = Depends(get_services)
):
    """Ingest every date in the inclusive range; failures are reported per date"""
    request_id = getattr(request.state, "request_id", "-")
    logger.info(f"[{request_id}] POST /ingest/backfill {body.start.isoformat()}..{body.end.isoformat()}")

    results = await services.dispatcher.dispatch(
        BACKFILL_PRICE_HISTORY,
        {"start": body.start.isoformat(), "end": body.end.isoformat()}
    )
    response = BackfillResponse(results=[IngestResultResponse(**r) for r in results])
    record_run(
        request,
        date=f"{body.start.isoformat()}..{body.end.isoformat()}",
        completed=response.completed,
        skipped=response.skipped,
        failed=response.failed
    )
    return response


@router.get("/ingestion-runs", response_model=IngestionRunListResponse)
async def list_ingestion_runs(
    source: Optional[str] = Query(None, description="Filter by run source"),
    limit: int = Query(50, ge=1, le=500, description="Maximum runs to return"),
    db: AsyncSession = Depends(get_db)
):
    """Most recently started runs first"""
    runs = await IngestionRunTracker(db).list_runs(source=source, limit=limit)
    items = [IngestionRunResponse.model_validate(run) for run in runs]
    return IngestionRunListResponse(items=items, count=len(items))
