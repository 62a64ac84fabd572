"""
Factor calculators feeding the flip score.

Each calculator falls back to a neutral value (0.5, or rank 50) when there is
not enough history; early-lifecycle scores depend on those defaults.
"""

from collections import defaultdict
from typing import Dict, List
import statistics

from analytics.core import coefficient_of_variation, mean, sort_descending, trend_strength
from analytics.types import (
    AggregatedMetrics,
    DailyItemStats,
    MarketHealthFactors,
    PatternFactors,
    PerformanceFactors,
    TrendFactors,
)
from models.base import TrendDirection

NEUTRAL_SCORE = 0.5
NEUTRAL_RANK = 50.0

TREND_THRESHOLD = 0.02

# Volume at which volume_rank saturates
VOLUME_NORMALIZATION = 1000


def trend_direction(price_trend: float) -> TrendDirection:
    if price_trend > TREND_THRESHOLD:
        return TrendDirection.BULLISH
    if price_trend < -TREND_THRESHOLD:
        return TrendDirection.BEARISH
    return TrendDirection.SIDEWAYS


# ============================================================================
# Trend
# ============================================================================

def calculate_trend_factors(metrics: AggregatedMetrics) -> TrendFactors:
    month = metrics.month
    return TrendFactors(
        strength=trend_strength(month.price_trend, month.volume_trend),
        direction=trend_direction(month.price_trend),
        momentum=month.volume_trend,
    )


# ============================================================================
# Performance
# ============================================================================

def calculate_performance_rank(history: List[DailyItemStats]) -> float:
    """
    1-100 rank from the price change over roughly 30 observations.

    50 is neutral; every percent of change moves the rank by 2.
    """
    if len(history) < 7:
        return NEUTRAL_RANK

    priced = [d for d in sort_descending(history) if d.avg_price is not None]
    if len(priced) < 2:
        return NEUTRAL_RANK

    latest_price = priced[0].avg_price
    month_ago_price = priced[min(29, len(priced) - 1)].avg_price
    if month_ago_price == 0:
        return NEUTRAL_RANK

    change_percent = (latest_price - month_ago_price) / month_ago_price * 100
    return max(1.0, min(100.0, 50 + change_percent * 2))


def calculate_performance_factors(
    history: List[DailyItemStats],
    metrics: AggregatedMetrics
) -> PerformanceFactors:
    month = metrics.month
    return PerformanceFactors(
        rank=calculate_performance_rank(history),
        stability=max(0.0, 1 - month.volatility),
        volume_rank=min(month.volume / VOLUME_NORMALIZATION, 1.0),
        volatility=min(month.volatility, 1.0),
    )


# ============================================================================
# Pattern
# ============================================================================

def calculate_seasonal_strength(history: List[DailyItemStats]) -> float:
    """How predictable volume is per weekday, averaged over weekdays with 2+ samples"""
    if len(history) < 14:
        return NEUTRAL_SCORE

    by_weekday: Dict[int, List[float]] = defaultdict(list)
    for day in history:
        if day.volume is None or day.avg_price is None:
            continue
        by_weekday[day.date.weekday()].append(day.volume)

    strengths = []
    for volumes in by_weekday.values():
        if len(volumes) < 2:
            continue
        avg = mean(volumes)
        if avg <= 0:
            strengths.append(0.0)
            continue
        strengths.append(max(0.0, 1 - statistics.pstdev(volumes) / avg))

    return mean(strengths) if strengths else NEUTRAL_SCORE


def calculate_pattern_confidence(history: List[DailyItemStats]) -> float:
    total_days = len(history)
    if total_days == 0:
        return 0.0

    valid_days = sum(1 for d in history if d.volume is not None and d.avg_price is not None)
    completeness = valid_days / total_days
    sample_size = min(total_days / 30, 1.0)
    return completeness * 0.7 + sample_size * 0.3


def calculate_pattern_factors(history: List[DailyItemStats]) -> PatternFactors:
    return PatternFactors(
        seasonal_strength=calculate_seasonal_strength(history),
        confidence=calculate_pattern_confidence(history),
    )


# ============================================================================
# Market health
# ============================================================================

def calculate_liquidity_score(history: List[DailyItemStats]) -> float:
    volumes = [d.volume for d in history if d.volume is not None and d.volume > 0]
    if len(volumes) < 7:
        return NEUTRAL_SCORE
    return max(0.0, 1 - coefficient_of_variation(volumes))


def calculate_participation_score(history: List[DailyItemStats]) -> float:
    total_days = len(history)
    if total_days == 0:
        return 0.0
    active_days = sum(
        1 for d in history
        if d.volume is not None and d.volume > 0 and d.avg_price is not None
    )
    return active_days / total_days


def calculate_market_stability_score(history: List[DailyItemStats]) -> float:
    """
    Compare rolling 7-day volatility of the most recent 7 windows with the
    7 windows before them. Falling volatility scores above 0.5.
    """
    if len(history) < 14:
        return NEUTRAL_SCORE

    chronological = list(reversed(sort_descending(history)))
    volatilities: List[float] = []
    for end in range(6, len(chronological)):
        window = chronological[end - 6:end + 1]
        prices = [d.avg_price for d in window if d.avg_price is not None]
        if len(prices) < 3 or mean(prices) == 0:
            continue
        volatilities.append(coefficient_of_variation(prices))

    if len(volatilities) < 2:
        return NEUTRAL_SCORE

    recent = volatilities[-7:]
    earlier = volatilities[-14:-7]
    if not earlier:
        return NEUTRAL_SCORE

    earlier_avg = mean(earlier)
    if earlier_avg == 0:
        return NEUTRAL_SCORE

    volatility_trend = (mean(recent) - earlier_avg) / earlier_avg
    return max(0.0, min(1.0, 0.5 - volatility_trend))


def calculate_overall_market_health(history: List[DailyItemStats]) -> float:
    if len(history) < 7:
        return NEUTRAL_SCORE

    return (
        calculate_liquidity_score(history) * 0.4
        + calculate_participation_score(history) * 0.3
        + calculate_market_stability_score(history) * 0.3
    )


def calculate_market_health_factors(history: List[DailyItemStats]) -> MarketHealthFactors:
    return MarketHealthFactors(overall_score=calculate_overall_market_health(history))
