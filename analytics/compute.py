"""
Per-item analytics: flip recommendation, market trends, item performance.

``compute_all_analytics_for_item`` aggregates the history once and derives all
three result types from it.
"""

from datetime import date
from typing import List, Optional

from analytics.core import (
    WINDOW_DAYS,
    calculate_ema,
    coefficient_of_variation,
    compute_aggregated_metrics,
    sort_descending,
    trend_strength,
)
from analytics.factors import (
    NEUTRAL_SCORE,
    calculate_market_health_factors,
    calculate_pattern_factors,
    calculate_performance_factors,
    calculate_trend_factors,
    trend_direction,
)
from analytics.scoring import calculate_flip_score
from analytics.types import (
    AggregatedMetrics,
    DailyItemStats,
    FlipFactors,
    FlipResult,
    ItemAnalytics,
    ItemPerformanceResult,
    MarketTrendResult,
)
from core.exceptions import PerItemAnalyticsError


def compute_flip_analytics(
    item_name: str,
    mod_rank: int,
    history: List[DailyItemStats],
    metrics: Optional[AggregatedMetrics] = None
) -> FlipResult:
    metrics = metrics or compute_aggregated_metrics(history)

    trend = calculate_trend_factors(metrics)
    performance = calculate_performance_factors(history, metrics)
    pattern = calculate_pattern_factors(history)
    market = calculate_market_health_factors(history)

    score = calculate_flip_score(trend, performance, pattern, market)

    return FlipResult(
        item_name=item_name,
        mod_rank=mod_rank,
        overall_score=score.overall_score,
        recommendation=score.recommendation,
        confidence=score.confidence,
        factors=FlipFactors(
            trend_strength=trend.strength,
            performance_rank=performance.rank,
            stability_score=performance.stability,
            volume_rank=performance.volume_rank,
            volatility_score=performance.volatility,
            seasonal_multiplier=pattern.seasonal_strength,
            market_health=market.overall_score,
            pattern_confidence=pattern.confidence,
        ),
    )


def compute_market_trends(
    item_name: str,
    mod_rank: int,
    history: List[DailyItemStats],
    target_date: date,
    metrics: Optional[AggregatedMetrics] = None
) -> List[MarketTrendResult]:
    """One trend row per window (7d, 14d, 30d)"""
    metrics = metrics or compute_aggregated_metrics(history)

    trends = []
    for label, days in WINDOW_DAYS.items():
        window = metrics[label]
        trends.append(MarketTrendResult(
            item_name=item_name,
            mod_rank=mod_rank,
            date=target_date,
            window=label,
            trend_direction=trend_direction(window.price_trend),
            trend_strength=trend_strength(window.price_trend, window.volume_trend),
            price_change=window.price_trend,
            volume_change=window.volume_trend,
            sma=window.sma,
            ema=calculate_ema(history, days),
            volatility=window.volatility,
        ))
    return trends


def calculate_price_change_percent(history: List[DailyItemStats]) -> Optional[float]:
    """First vs last average price over the history, in percent"""
    if len(history) < 2:
        return None

    chronological = list(reversed(sort_descending(history)))
    first_price = chronological[0].avg_price
    last_price = chronological[-1].avg_price
    if not first_price or not last_price:
        return None

    return (last_price - first_price) / first_price * 100


def calculate_volume_liquidity_score(history: List[DailyItemStats]) -> float:
    volumes = [d.volume for d in history if d.volume is not None]
    if len(volumes) < 7:
        return NEUTRAL_SCORE
    if sum(volumes) == 0:
        return 0.0
    return max(0.0, min(1.0, 1 - coefficient_of_variation(volumes)))


def compute_item_performance(
    item_name: str,
    mod_rank: int,
    history: List[DailyItemStats],
    target_date: date,
    metrics: Optional[AggregatedMetrics] = None
) -> ItemPerformanceResult:
    metrics = metrics or compute_aggregated_metrics(history)
    month = metrics.month
    performance = calculate_performance_factors(history, metrics)

    return ItemPerformanceResult(
        item_name=item_name,
        mod_rank=mod_rank,
        date=target_date,
        price_change_percent=calculate_price_change_percent(history),
        volume_change_percent=month.volume_trend,
        stability_score=1 - month.volatility,
        performance_rank=performance.rank,
        liquidity_score=calculate_volume_liquidity_score(history),
        volatility_score=month.volatility,
    )


def compute_all_analytics_for_item(
    item_name: str,
    mod_rank: int,
    history: List[DailyItemStats],
    target_date: date
) -> ItemAnalytics:
    """
    Raises:
        PerItemAnalyticsError: Any failure while computing this item
    """
    try:
        metrics = compute_aggregated_metrics(history)
        return ItemAnalytics(
            flip=compute_flip_analytics(item_name, mod_rank, history, metrics),
            market_trends=compute_market_trends(item_name, mod_rank, history, target_date, metrics),
            performance=compute_item_performance(item_name, mod_rank, history, target_date, metrics),
        )
    except Exception as e:
        raise PerItemAnalyticsError(
            f"Analytics failed for {item_name} (mod rank {mod_rank})",
            context={
                "item_name": item_name,
                "mod_rank": mod_rank,
                "date": target_date.isoformat(),
                "history_days": len(history)
            },
            original_exception=e
        )
