"""
Read-only analytics listing
"""

from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from api.dependencies import get_db
from models.analytics import FlipRecommendation
from models.base import Recommendation
from schemas.api import FlipRecommendationListResponse, FlipRecommendationResponse

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/flip-recommendations", response_model=FlipRecommendationListResponse)
async def list_flip_recommendations(
    target_date: date = Query(..., alias="date", description="Analytics date (YYYY-MM-DD)"),
    recommendation: Optional[str] = Query(None, pattern="^(BUY|HOLD|AVOID)$"),
    limit: int = Query(50, ge=1, le=1000),
    db: AsyncSession = Depends(get_db)
):
    """Ranked recommendations for one date, best first"""
    query = select(FlipRecommendation).where(FlipRecommendation.date == target_date)
    if recommendation:
        query = query.where(FlipRecommendation.recommendation == Recommendation(recommendation))
    query = query.order_by(FlipRecommendation.rank).limit(limit)

    result = await db.execute(query)
    items = [FlipRecommendationResponse.model_validate(row) for row in result.scalars().all()]
    return FlipRecommendationListResponse(date=target_date, count=len(items), items=items)
