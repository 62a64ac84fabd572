"""
Replace-by-date storage for analytics results.

Each result type is written in its own transaction (delete the date's rows,
then batched inserts), and the types are written one after another so a
reader never sees two types mid-write at the same time.
"""

from datetime import date
from typing import Any, Dict, List
import logging

from sqlalchemy import delete, insert
from sqlalchemy.ext.asyncio import AsyncSession

from analytics.types import FlipResult, ItemPerformanceResult, MarketTrendResult, PopularItemScore
from core.exceptions import PersistenceError
from models.analytics import FlipRecommendation, ItemPerformance, MarketTrend, PopularItem

logger = logging.getLogger(__name__)


class AnalyticsStorage:
    """Write computed analytics for one date"""

    def __init__(self, db_session: AsyncSession, batch_size: int = 250):
        self.db = db_session
        self.batch_size = batch_size

    async def _replace_for_date(self, model, target_date: date, rows: List[Dict[str, Any]]) -> int:
        try:
            await self.db.execute(delete(model).where(model.date == target_date))
            for i in range(0, len(rows), self.batch_size):
                await self.db.execute(insert(model), rows[i:i + self.batch_size])
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            raise PersistenceError(
                f"Failed to replace {model.__tablename__} rows",
                context={
                    "operation": "REPLACE",
                    "table_name": model.__tablename__,
                    "date": target_date.isoformat(),
                    "rows": len(rows)
                },
                original_exception=e
            )

        logger.info(f"Stored {len(rows)} {model.__tablename__} rows for {target_date.isoformat()}")
        return len(rows)

    async def replace_flip_recommendations(self, target_date: date, ranked: List[FlipResult]) -> int:
        """``ranked`` must already be in rank order"""
        rows = [
            {
                "date": target_date,
                "item_name": r.item_name,
                "mod_rank": r.mod_rank,
                "score": r.overall_score,
                "rank": position,
                "recommendation": r.recommendation,
                "confidence": r.confidence,
                "trend_strength": r.factors.trend_strength,
                "performance_rank": r.factors.performance_rank,
                "stability_score": r.factors.stability_score,
                "volume_rank": r.factors.volume_rank,
                "volatility_score": r.factors.volatility_score,
                "seasonal_multiplier": r.factors.seasonal_multiplier,
                "market_health": r.factors.market_health,
                "pattern_confidence": r.factors.pattern_confidence,
                "factors_json": r.factors.to_dict(),
            }
            for position, r in enumerate(ranked, start=1)
        ]
        return await self._replace_for_date(FlipRecommendation, target_date, rows)

    async def replace_market_trends(self, target_date: date, trends: List[MarketTrendResult]) -> int:
        rows = [
            {
                "date": target_date,
                "item_name": t.item_name,
                "mod_rank": t.mod_rank,
                "window": t.window,
                "trend_direction": t.trend_direction,
                "trend_strength": t.trend_strength,
                "price_change": t.price_change,
                "volume_change": t.volume_change,
                "sma": t.sma,
                "ema": t.ema,
                "volatility": t.volatility,
            }
            for t in trends
        ]
        return await self._replace_for_date(MarketTrend, target_date, rows)

    async def replace_item_performance(self, target_date: date, performances: List[ItemPerformanceResult]) -> int:
        rows = [
            {
                "date": target_date,
                "item_name": p.item_name,
                "mod_rank": p.mod_rank,
                "price_change_percent": p.price_change_percent,
                "volume_change_percent": p.volume_change_percent,
                "stability_score": p.stability_score,
                "performance_rank": p.performance_rank,
                "liquidity_score": p.liquidity_score,
                "volatility_score": p.volatility_score,
            }
            for p in performances
        ]
        return await self._replace_for_date(ItemPerformance, target_date, rows)

    async def replace_popular_items(self, target_date: date, ranked: List[PopularItemScore]) -> int:
        rows = [
            {
                "date": target_date,
                "item_name": s.item_name,
                "mod_rank": s.mod_rank,
                "score": s.score,
                "rank": position,
                "metrics_json": s.metrics,
            }
            for position, s in enumerate(ranked, start=1)
        ]
        return await self._replace_for_date(PopularItem, target_date, rows)
