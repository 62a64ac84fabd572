"""Weighted flip score, recommendation label and confidence."""

from typing import List
import statistics

from analytics.types import (
    FlipResult,
    FlipScore,
    FlipScoreInputs,
    MarketHealthFactors,
    PatternFactors,
    PerformanceFactors,
    TrendFactors,
)
from models.base import Recommendation, TrendDirection

WEIGHTS = {
    "trend": 0.3,
    "performance": 0.35,
    "pattern": 0.15,
    "market": 0.2,
}

DIRECTION_MULTIPLIER = {
    TrendDirection.BULLISH: 1.0,
    TrendDirection.BEARISH: -0.5,
    TrendDirection.SIDEWAYS: 0.0,
}

BUY_THRESHOLD = 0.7
HOLD_THRESHOLD = 0.3


def compute_overall_flip_score(inputs: FlipScoreInputs) -> float:
    trend_score = inputs.trend.strength * DIRECTION_MULTIPLIER[inputs.trend.direction]

    performance = inputs.performance
    performance_score = (
        performance.stability * 0.4
        + performance.volume_rank * 0.4
        + (1 - performance.volatility) * 0.2
    )

    pattern_score = inputs.pattern.seasonal_strength * inputs.pattern.confidence
    market_score = inputs.market.overall_score

    return (
        trend_score * WEIGHTS["trend"]
        + performance_score * WEIGHTS["performance"]
        + pattern_score * WEIGHTS["pattern"]
        + market_score * WEIGHTS["market"]
    )


def generate_recommendation(score: float) -> Recommendation:
    # Strict comparisons: 0.7 itself is HOLD, 0.3 itself is AVOID
    if score > BUY_THRESHOLD:
        return Recommendation.BUY
    if score > HOLD_THRESHOLD:
        return Recommendation.HOLD
    return Recommendation.AVOID


def factor_vector(inputs: FlipScoreInputs) -> List[float]:
    return [
        inputs.trend.strength,
        inputs.performance.rank / 100,
        inputs.performance.stability,
        inputs.performance.volume_rank,
        1 - inputs.performance.volatility,
        inputs.pattern.seasonal_strength,
        inputs.pattern.confidence,
        inputs.market.overall_score,
    ]


def calculate_confidence(inputs: FlipScoreInputs) -> float:
    """Agreement between factors: 1 - population stdev, kept within [0.1, 1]"""
    spread = statistics.pstdev(factor_vector(inputs))
    return max(0.1, min(1.0, 1 - spread))


def calculate_flip_score(
    trend: TrendFactors,
    performance: PerformanceFactors,
    pattern: PatternFactors,
    market: MarketHealthFactors
) -> FlipScore:
    inputs = FlipScoreInputs(trend=trend, performance=performance, pattern=pattern, market=market)
    overall_score = compute_overall_flip_score(inputs)
    return FlipScore(
        overall_score=overall_score,
        recommendation=generate_recommendation(overall_score),
        confidence=calculate_confidence(inputs),
    )


def rank_flip_results(results: List[FlipResult]) -> List[FlipResult]:
    """Highest score first; equal scores keep their input order"""
    return sorted(results, key=lambda r: r.overall_score, reverse=True)
