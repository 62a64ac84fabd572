"""
Unit tests for per-item analytics (flip, market trends, performance)
"""

import pytest
from datetime import date, timedelta
from unittest.mock import patch
from analytics.compute import (
    calculate_price_change_percent,
    calculate_volume_liquidity_score,
    compute_all_analytics_for_item,
    compute_item_performance,
    compute_market_trends,
)
from analytics.types import DailyItemStats
from core.exceptions import PerItemAnalyticsError
from models.base import Recommendation, TrendDirection

END = date(2025, 8, 31)


def rising_history(days=10, start_price=100.0, daily_gain=0.02):
    return [
        DailyItemStats(
            date=END - timedelta(days=days - 1 - i),
            item_name="Rising Mod",
            mod_rank=0,
            volume=50 + i * 5,
            min_price=start_price * (1 + daily_gain) ** i * 0.9,
            max_price=start_price * (1 + daily_gain) ** i * 1.1,
            avg_price=start_price * (1 + daily_gain) ** i,
            median=start_price * (1 + daily_gain) ** i,
        )
        for i in range(days)
    ]


class TestComputeAllAnalytics:
    """One aggregation feeding three result types"""

    def test_result_shapes(self):
        result = compute_all_analytics_for_item("Rising Mod", 0, rising_history(), END)

        assert result.flip.item_name == "Rising Mod"
        assert result.flip.mod_rank == 0
        assert isinstance(result.flip.recommendation, Recommendation)
        assert 0.1 <= result.flip.confidence <= 1.0
        assert [t.window for t in result.market_trends] == ["7d", "14d", "30d"]
        assert result.performance.date == END

    def test_recent_gains_read_as_bearish_trend(self):
        result = compute_all_analytics_for_item("Rising Mod", 0, rising_history(), END)

        assert result.market_trends[0].trend_direction == TrendDirection.BEARISH
        assert result.market_trends[0].price_change < -0.02
        assert result.flip.factors.performance_rank > 50
        assert result.flip.factors.trend_strength > 0

    def test_factor_dict_is_camel_case(self):
        result = compute_all_analytics_for_item("Rising Mod", 0, rising_history(), END)

        assert set(result.flip.factors.to_dict()) == {
            "trendStrength", "performanceRank", "stabilityScore", "volumeRank",
            "volatilityScore", "seasonalMultiplier", "marketHealth", "patternConfidence",
        }

    def test_failure_is_wrapped_with_item_context(self):
        with patch("analytics.compute.compute_flip_analytics", side_effect=ValueError("boom")):
            with pytest.raises(PerItemAnalyticsError) as exc_info:
                compute_all_analytics_for_item("Rising Mod", 0, rising_history(), END)

        assert exc_info.value.context["item_name"] == "Rising Mod"
        assert exc_info.value.context["mod_rank"] == 0
        assert isinstance(exc_info.value.original_exception, ValueError)


class TestMarketTrends:

    def test_ema_only_for_windows_with_enough_rows(self):
        trends = compute_market_trends("Rising Mod", 0, rising_history(days=10), END)
        by_window = {t.window: t for t in trends}

        assert by_window["7d"].ema is not None
        assert by_window["14d"].ema is None
        assert by_window["30d"].ema is None
        assert by_window["30d"].sma == pytest.approx(sum(d.avg_price for d in rising_history()) / 10)


class TestItemPerformance:

    def test_price_change_percent(self):
        history = rising_history(days=2, daily_gain=0.10)

        assert calculate_price_change_percent(history) == pytest.approx(10.0)
        assert calculate_price_change_percent(history[:1]) is None

    def test_price_change_percent_without_first_price(self):
        history = rising_history(days=3)
        history[0] = DailyItemStats(date=history[0].date, item_name="Rising Mod", mod_rank=0, volume=1)

        assert calculate_price_change_percent(history) is None

    def test_volume_liquidity_score(self):
        assert calculate_volume_liquidity_score(rising_history(days=6)) == 0.5

        silent = [
            DailyItemStats(date=END - timedelta(days=i), item_name="Silent", mod_rank=-1, volume=0, avg_price=1)
            for i in range(7)
        ]
        assert calculate_volume_liquidity_score(silent) == 0.0

    def test_performance_result(self):
        performance = compute_item_performance("Rising Mod", 0, rising_history(), END)

        assert performance.price_change_percent == pytest.approx((1.02 ** 9 - 1) * 100)
        # Newest half traded more, so the index-split trend is negative
        assert performance.volume_change_percent == pytest.approx((300 - 425) / 425)
        assert performance.stability_score == pytest.approx(1 - performance.volatility_score)
        assert 0.0 <= performance.liquidity_score <= 1.0
