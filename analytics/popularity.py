"""Popularity score: liquidity and spread reward, volatility penalty."""

from typing import Dict, Iterable, List, Optional, Tuple
import math

from analytics.core import compute_aggregated_metrics
from analytics.types import AggregatedMetrics, DailyItemStats, PopularItemScore
from core.exceptions import PerItemAnalyticsError

DEFAULT_WEIGHTS = {
    "liquidity": 0.5,
    "spread": 0.3,
    "volatility": 0.2,
}


def compute_popularity_score(
    metrics: AggregatedMetrics,
    weights: Optional[Dict[str, float]] = None
) -> Tuple[float, Dict[str, float]]:
    """
    Returns:
        (score, metrics breakdown stored alongside the ranking)
    """
    weights = weights or DEFAULT_WEIGHTS
    if metrics.latest is None:
        return 0.0, {}

    latest = metrics.latest
    month = metrics.month

    volume = latest.volume if latest.volume is not None else 0
    min_price = latest.min_price if latest.min_price is not None else 0
    max_price = latest.max_price if latest.max_price is not None else 0
    median = latest.median if latest.median is not None else 0

    spread = max_price - min_price
    spread_pct = spread / median if median > 0 else 0.0

    liquidity_score = math.log(month.volume + 1)
    spread_score = spread_pct
    volatility_score = month.volatility

    score = (
        weights["liquidity"] * liquidity_score
        + weights["spread"] * spread_score
        - weights["volatility"] * volatility_score
    )

    return score, {
        "liquidityScore": liquidity_score,
        "spreadScore": spread_score,
        "volatilityScore": volatility_score,
        "volume": volume,
        "median": median,
        "spreadPct": spread_pct,
        "spread": spread,
        "minPrice": min_price,
        "maxPrice": max_price,
    }


def compute_item_popularity(
    item_name: str,
    mod_rank: int,
    history: Iterable[DailyItemStats],
    weights: Optional[Dict[str, float]] = None
) -> PopularItemScore:
    """
    Raises:
        PerItemAnalyticsError: Any failure while scoring this item
    """
    try:
        score, breakdown = compute_popularity_score(compute_aggregated_metrics(history), weights)
    except Exception as e:
        raise PerItemAnalyticsError(
            f"Popularity failed for {item_name} (mod rank {mod_rank})",
            context={"item_name": item_name, "mod_rank": mod_rank},
            original_exception=e
        )
    return PopularItemScore(item_name=item_name, mod_rank=mod_rank, score=score, metrics=breakdown)


def rank_popular_items(scores: List[PopularItemScore]) -> List[PopularItemScore]:
    """Most popular first; equal scores keep their input order"""
    return sorted(scores, key=lambda s: s.score, reverse=True)

