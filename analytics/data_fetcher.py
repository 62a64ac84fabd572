"""
Aggregation input for the analytics run.

Reads closed-side observation rows for ``start <= date <= target`` and
collapses them into one DailyItemStats per item, mod rank and date.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple
import hashlib
import json
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from analytics.core import sort_descending
from analytics.types import DailyItemStats
from models.base import OrderSide
from models.price_history import PriceHistoryEntry

logger = logging.getLogger(__name__)

ItemKey = Tuple[str, int]


def _mean_of_present(values: List[Optional[float]]) -> Optional[float]:
    present = [v for v in values if v is not None]
    return sum(present) / len(present) if present else None


def collapse_day(item_name: str, mod_rank: int, day: date, rows: List[tuple]) -> DailyItemStats:
    """
    Merge the rows of one item+mod rank on one day.

    Volumes are summed, min/max take the extremes and average/median are
    averaged, each over the values that are present.
    """
    volumes = [r.volume for r in rows if r.volume is not None]
    mins = [r.min_price for r in rows if r.min_price is not None]
    maxes = [r.max_price for r in rows if r.max_price is not None]

    return DailyItemStats(
        date=day,
        item_name=item_name,
        mod_rank=mod_rank,
        volume=sum(volumes) if volumes else None,
        min_price=min(mins) if mins else None,
        max_price=max(maxes) if maxes else None,
        avg_price=_mean_of_present([r.avg_price for r in rows]),
        median=_mean_of_present([r.median for r in rows]),
    )


def compute_input_digest(by_item: Dict[ItemKey, List[DailyItemStats]]) -> str:
    """SHA-256 of the aggregation input, independent of query order"""
    canonical = []
    for item_name, mod_rank in sorted(by_item):
        days = sorted(by_item[(item_name, mod_rank)], key=lambda d: d.date)
        canonical.append([
            item_name,
            mod_rank,
            [
                [d.date.isoformat(), d.volume, d.min_price, d.max_price, d.avg_price, d.median]
                for d in days
            ],
        ])
    encoded = json.dumps(canonical, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class AnalyticsDataFetcher:
    """Load and group the closed-side history used by every calculator"""

    def __init__(self, db_session: AsyncSession, history_days: int = 30):
        self.db = db_session
        self.history_days = history_days

    async def fetch(self, target_date: date) -> Dict[ItemKey, List[DailyItemStats]]:
        """
        Returns:
            (item_name, mod_rank) -> daily stats, most recent day first
        """
        start_date = target_date - timedelta(days=self.history_days)

        result = await self.db.execute(
            select(
                PriceHistoryEntry.item_name,
                PriceHistoryEntry.mod_rank,
                PriceHistoryEntry.date,
                PriceHistoryEntry.volume,
                PriceHistoryEntry.min_price,
                PriceHistoryEntry.max_price,
                PriceHistoryEntry.avg_price,
                PriceHistoryEntry.median,
            ).where(
                PriceHistoryEntry.order_type == OrderSide.CLOSED,
                PriceHistoryEntry.date >= start_date,
                PriceHistoryEntry.date <= target_date,
            ).order_by(
                PriceHistoryEntry.item_name,
                PriceHistoryEntry.mod_rank,
                PriceHistoryEntry.date,
            )
        )
        rows = result.all()

        grouped: Dict[ItemKey, Dict[date, List[tuple]]] = defaultdict(lambda: defaultdict(list))
        for row in rows:
            grouped[(row.item_name, row.mod_rank)][row.date].append(row)

        by_item = {
            key: sort_descending(
                collapse_day(key[0], key[1], day, day_rows)
                for day, day_rows in days.items()
            )
            for key, days in grouped.items()
        }

        logger.info(
            f"Fetched analytics input for {target_date.isoformat()} "
            f"(from {start_date.isoformat()}): {len(by_item)} items, {len(rows)} rows"
        )
        return by_item
