"""
Analytics Runner - recompute every analytics table for one date.

Triggered by ``ingestion.completed``. The run is tracked in the same run
table as ingestion (source ``analytics.daily``), keyed by a digest of the
aggregation input: identical input is skipped, and a failed run never blocks
a later retry.
"""

from datetime import date
from typing import Any, Dict, List, Optional
import logging

from analytics.compute import compute_all_analytics_for_item
from analytics.core import count_complete_days
from analytics.data_fetcher import AnalyticsDataFetcher, compute_input_digest
from analytics.popularity import compute_item_popularity, rank_popular_items
from analytics.scoring import rank_flip_results
from analytics.storage import AnalyticsStorage
from analytics.types import FlipResult, ItemAnalytics, PopularItemScore
from core.database import Database
from core.exceptions import DuplicateContentError, PerItemAnalyticsError, PipelineError
from events.bus import EventBus
from ingestion.run_tracker import IngestionRunTracker
from models.base import Recommendation, RunStatus
from schemas.events import (
    ANALYTICS_COMPLETED,
    INGESTION_COMPLETED,
    AnalyticsCompletedEvent,
    AnalyticsSummary,
    ItemPerformanceSummary,
    MarketTrendSummary,
    TopFlipRecommendation,
)

logger = logging.getLogger(__name__)


class AnalyticsRunner:
    """
    Daily analytics orchestrator.

    Responsibilities:
    - Skip dates whose aggregation input was already processed
    - Fan out per item, isolating per-item failures
    - Store results type by type (flip, trends, performance, popularity)
    - Announce the finished run
    """

    def __init__(
        self,
        database: Database,
        event_bus: Optional[EventBus] = None,
        source: str = "analytics.daily",
        history_days: int = 30,
        min_history_days: int = 7,
        top_count: int = 50,
        batch_size: int = 250
    ):
        self.database = database
        self.event_bus = event_bus
        self.source = source
        self.history_days = history_days
        self.min_history_days = min_history_days
        self.top_count = top_count
        self.batch_size = batch_size

    def subscribe(self, event_bus: EventBus):
        """Run analytics whenever an ingestion completes"""
        self.event_bus = self.event_bus or event_bus
        event_bus.subscribe(INGESTION_COMPLETED, self.handle_ingestion_completed)

    async def handle_ingestion_completed(self, message: Dict[str, Any]):
        raw_date = message.get("date")
        if not raw_date:
            logger.warning(f"Ignoring {INGESTION_COMPLETED} message without a date")
            return
        await self.run(date.fromisoformat(raw_date))

    def compute_items(self, by_item: Dict, target_date: date) -> List[ItemAnalytics]:
        """Per-item fan-out; items below the history threshold or failing are left out"""
        results = []
        for (item_name, mod_rank), history in by_item.items():
            complete_days = count_complete_days(history)
            if complete_days < self.min_history_days:
                logger.debug(
                    f"Skipping {item_name} (mod rank {mod_rank}): "
                    f"{complete_days} complete days of history"
                )
                continue

            try:
                results.append(compute_all_analytics_for_item(item_name, mod_rank, history, target_date))
            except PerItemAnalyticsError as e:
                logger.error(
                    f"Analytics failed for {item_name} (mod rank {mod_rank}): {e.message}",
                    extra={"error_context": e.to_dict()}
                )
        return results

    def compute_popularity(self, by_item: Dict) -> List[PopularItemScore]:
        """Popularity over every item regardless of history length; failing items are left out"""
        scores = []
        for (item_name, mod_rank), history in by_item.items():
            try:
                scores.append(compute_item_popularity(item_name, mod_rank, history))
            except PerItemAnalyticsError as e:
                logger.error(
                    f"Popularity failed for {item_name} (mod rank {mod_rank}): {e.message}",
                    extra={"error_context": e.to_dict()}
                )
        return rank_popular_items(scores)

    async def run(self, target_date: date) -> Dict[str, Any]:
        """
        Compute and store analytics for ``target_date``.

        Returns:
            Dictionary with run_id, date, status ("completed" or "skipped"),
            scored item count and popular item count
        """
        identifier = target_date.isoformat()

        async with self.database.session() as session:
            tracker = IngestionRunTracker(session)
            run = await tracker.start_run(self.source, identifier)
            run_id = run.id
            digest: Optional[str] = None

            try:
                by_item = await AnalyticsDataFetcher(session, self.history_days).fetch(target_date)
                digest = compute_input_digest(by_item)

                previous = await tracker.find_completed_run_by_hash(self.source, identifier, digest)
                if previous is not None:
                    raise DuplicateContentError(
                        "Analytics input already processed for this date",
                        context={
                            "source": self.source,
                            "date": identifier,
                            "sha256": digest,
                            "previous_run_id": previous.id
                        }
                    )

                item_results = self.compute_items(by_item, target_date)
                ranked = rank_flip_results([r.flip for r in item_results])
                popular = self.compute_popularity(by_item)

                storage = AnalyticsStorage(session, self.batch_size)
                await storage.replace_flip_recommendations(target_date, ranked)
                await storage.replace_market_trends(
                    target_date, [t for r in item_results for t in r.market_trends]
                )
                await storage.replace_item_performance(
                    target_date, [r.performance for r in item_results]
                )
                await storage.replace_popular_items(target_date, popular)

                await tracker.update_run(
                    run_id,
                    RunStatus.COMPLETED,
                    content_hash=digest,
                    metadata={
                        "contentHash": digest,
                        "itemsCount": len(by_item),
                        "scored": len(item_results),
                        "popular": len(popular)
                    }
                )

            except DuplicateContentError as e:
                logger.info(f"Skipping analytics for {identifier}: {e.message}")
                await tracker.update_run(
                    run_id,
                    RunStatus.SKIPPED,
                    content_hash=digest,
                    metadata={
                        "reason": "duplicate_input",
                        "contentHash": digest,
                        "previousRunId": e.context.get("previous_run_id")
                    }
                )
                return {"run_id": run_id, "date": identifier, "status": RunStatus.SKIPPED.value}

            except PipelineError as e:
                logger.error(
                    f"Analytics failed for {identifier}: {e.message}",
                    extra={"error_context": e.to_dict()}
                )
                await session.rollback()
                await tracker.update_run(run_id, RunStatus.FAILED, content_hash=digest, metadata={"error": str(e)})
                raise

            except Exception as e:
                logger.exception(f"Unexpected error computing analytics for {identifier}")
                await session.rollback()
                await tracker.update_run(run_id, RunStatus.FAILED, content_hash=digest, metadata={"error": str(e)})
                raise

        logger.info(
            f"Analytics completed for {identifier}: {len(ranked)} items scored, "
            f"{len(popular)} popular items ranked"
        )

        if self.event_bus is not None:
            event = self.build_completed_event(target_date, item_results, ranked)
            await self.event_bus.publish(ANALYTICS_COMPLETED, event.to_message())

        return {
            "run_id": run_id,
            "date": identifier,
            "status": RunStatus.COMPLETED.value,
            "scored": len(ranked),
            "popular": len(popular)
        }

    def build_completed_event(
        self,
        target_date: date,
        item_results: List[ItemAnalytics],
        ranked: List[FlipResult]
    ) -> AnalyticsCompletedEvent:
        """Top recommendations plus the trends and performance of those same items"""
        top = ranked[:self.top_count]
        top_keys = {(r.item_name, r.mod_rank) for r in top}

        top_recommendations = [
            TopFlipRecommendation(
                item_name=r.item_name,
                mod_rank=r.mod_rank,
                rank=position,
                overall_score=r.overall_score,
                recommendation=r.recommendation.value,
                confidence=r.confidence,
                factors=r.factors.to_dict(),
            )
            for position, r in enumerate(top, start=1)
        ]

        market_trends = [
            MarketTrendSummary(
                item_name=t.item_name,
                mod_rank=t.mod_rank,
                window=t.window,
                trend_direction=t.trend_direction.value,
                trend_strength=t.trend_strength,
                price_change=t.price_change,
                volume_change=t.volume_change,
                sma=t.sma,
                ema=t.ema,
                volatility=t.volatility,
            )
            for r in item_results
            if (r.flip.item_name, r.flip.mod_rank) in top_keys
            for t in r.market_trends
        ]

        item_performances = [
            ItemPerformanceSummary(
                item_name=p.item_name,
                mod_rank=p.mod_rank,
                price_change_percent=p.price_change_percent,
                volume_change_percent=p.volume_change_percent,
                stability_score=p.stability_score,
                performance_rank=p.performance_rank,
                liquidity_score=p.liquidity_score,
                volatility_score=p.volatility_score,
            )
            for p in (r.performance for r in item_results)
            if (p.item_name, p.mod_rank) in top_keys
        ]

        summary = AnalyticsSummary(
            buy_count=sum(1 for r in ranked if r.recommendation == Recommendation.BUY),
            hold_count=sum(1 for r in ranked if r.recommendation == Recommendation.HOLD),
            avoid_count=sum(1 for r in ranked if r.recommendation == Recommendation.AVOID),
            average_score=sum(r.overall_score for r in ranked) / len(ranked) if ranked else 0.0,
        )

        return AnalyticsCompletedEvent(
            date=target_date,
            count=len(ranked),
            top_recommendations=top_recommendations,
            market_trends=market_trends,
            item_performances=item_performances,
            summary=summary,
        )
