"""
Unit tests for windowed aggregation and factor calculators
"""

import pytest
from datetime import date, timedelta
from analytics.core import (
    calculate_ema,
    calculate_sma,
    compute_aggregated_metrics,
    compute_window,
    count_complete_days,
    sort_descending,
)
from analytics.factors import (
    calculate_liquidity_score,
    calculate_market_stability_score,
    calculate_overall_market_health,
    calculate_participation_score,
    calculate_pattern_confidence,
    calculate_performance_rank,
    calculate_seasonal_strength,
    trend_direction,
)
from analytics.types import DailyItemStats
from models.base import TrendDirection

END = date(2025, 8, 31)


def make_history(prices, volumes=None, end=END):
    """Oldest-first prices/volumes -> DailyItemStats ending on ``end``"""
    volumes = volumes if volumes is not None else [10] * len(prices)
    count = len(prices)
    return [
        DailyItemStats(
            date=end - timedelta(days=count - 1 - i),
            item_name="Test Item",
            mod_rank=0,
            volume=volume,
            min_price=None if price is None else price * 0.9,
            max_price=None if price is None else price * 1.1,
            avg_price=price,
            median=price,
        )
        for i, (price, volume) in enumerate(zip(prices, volumes))
    ]


class TestComputeWindow:
    """Rolling window statistics"""

    def test_trend_compares_older_half_against_newest_half(self):
        # Most recent first: [20, 20] then [10, 10]
        history = sort_descending(make_history([10, 10, 20, 20]))
        window = compute_window(history, 7)

        assert window.price_trend == pytest.approx(-0.5)
        assert window.volume_trend == pytest.approx(0.0)
        assert window.trend_strength == pytest.approx(0.25)
        assert window.sma == pytest.approx(15.0)
        assert window.vwap == pytest.approx(15.0)
        assert window.volatility == pytest.approx(5 / 15)
        assert window.volume == 40
        assert window.min_price == pytest.approx(9.0)
        assert window.max_price == pytest.approx(22.0)

    def test_recent_drop_gives_positive_trend(self):
        window = compute_window(sort_descending(make_history([20, 20, 10, 10])), 7)

        assert window.price_trend == pytest.approx(1.0)

    def test_trend_denominator_is_most_recent_half(self):
        window = compute_window(sort_descending(make_history([100, 100, 200, 200])), 7)

        assert window.price_trend == pytest.approx(-0.5)

    def test_odd_count_puts_extra_day_in_older_half(self):
        # Most recent first: [20] then [20, 10]
        window = compute_window(sort_descending(make_history([10, 20, 20])), 7)

        assert window.price_trend == pytest.approx(-0.25)

    def test_volume_trend_uses_same_halves(self):
        window = compute_window(sort_descending(make_history([10, 10, 10, 10], volumes=[30, 30, 10, 10])), 7)

        assert window.volume_trend == pytest.approx(2.0)

    def test_only_most_recent_days_are_used(self):
        history = sort_descending(make_history([1000] * 3 + [10] * 7))
        window = compute_window(history, 7)

        assert window.sma == pytest.approx(10.0)
        assert window.volatility == pytest.approx(0.0)

    def test_incomplete_rows_are_excluded(self):
        history = make_history([10, 10, 10])
        history.append(DailyItemStats(date=END + timedelta(days=1), item_name="Test Item", mod_rank=0, avg_price=500))
        window = compute_window(sort_descending(history), 7)

        assert window.sma == pytest.approx(10.0)

    def test_empty_window_is_all_zero(self):
        window = compute_window([], 7)

        assert window.volume == 0
        assert window.vwap == 0
        assert window.trend_strength == 0

    def test_zero_volume_gives_zero_vwap(self):
        window = compute_window(sort_descending(make_history([10, 12], volumes=[0, 0])), 7)

        assert window.vwap == 0.0
        assert window.volume_trend == 0.0

    def test_aggregated_metrics_latest_ignores_input_order(self):
        history = make_history([10, 11, 12])
        metrics = compute_aggregated_metrics(list(reversed(history)))

        assert metrics.latest.date == END
        assert set(metrics.windows) == {"7d", "14d", "30d"}
        assert metrics.month is metrics["30d"]


class TestMovingAverages:
    """SMA / EMA over the most recent rows"""

    def test_sma_requires_enough_rows(self):
        history = make_history([10, 20, 30])

        assert calculate_sma(history, 4) is None
        assert calculate_sma(history, 2) == pytest.approx(25.0)

    def test_ema_seeded_with_oldest_price(self):
        history = make_history([10, 20, 30])

        assert calculate_ema(history, 3) == pytest.approx(22.5)

    def test_ema_requires_enough_rows(self):
        assert calculate_ema(make_history([10, 20]), 3) is None

    def test_count_complete_days(self):
        history = make_history([10, None, 12])

        assert count_complete_days(history) == 2


class TestFactors:
    """Neutral defaults and bounded factor values"""

    @pytest.mark.parametrize("price_trend, expected", [
        (0.03, TrendDirection.BULLISH),
        (-0.03, TrendDirection.BEARISH),
        (0.02, TrendDirection.SIDEWAYS),
        (-0.02, TrendDirection.SIDEWAYS),
    ])
    def test_trend_direction(self, price_trend, expected):
        assert trend_direction(price_trend) == expected

    def test_performance_rank_neutral_with_short_history(self):
        assert calculate_performance_rank(make_history([10, 20, 30])) == 50.0

    def test_performance_rank_from_price_change(self):
        history = make_history([100] * 9 + [110])

        assert calculate_performance_rank(history) == pytest.approx(70.0)

    def test_performance_rank_is_capped(self):
        assert calculate_performance_rank(make_history([100] * 9 + [200])) == 100.0
        assert calculate_performance_rank(make_history([100] * 9 + [1])) == 1.0

    def test_performance_rank_neutral_when_month_ago_price_is_zero(self):
        assert calculate_performance_rank(make_history([0] * 9 + [10])) == 50.0

    def test_seasonal_strength(self):
        assert calculate_seasonal_strength(make_history([10] * 13)) == 0.5
        assert calculate_seasonal_strength(make_history([10] * 14)) == pytest.approx(1.0)
        assert calculate_seasonal_strength(make_history([10] * 14, volumes=[0] * 14)) == 0.0

    def test_pattern_confidence(self):
        assert calculate_pattern_confidence([]) == 0.0
        assert calculate_pattern_confidence(make_history([10] * 30)) == pytest.approx(1.0)
        assert calculate_pattern_confidence(make_history([10] * 15)) == pytest.approx(0.85)

    def test_liquidity_score(self):
        assert calculate_liquidity_score(make_history([10] * 6)) == 0.5
        assert calculate_liquidity_score(make_history([10] * 7)) == pytest.approx(1.0)

    def test_participation_score(self):
        history = make_history([10] * 10, volumes=[0, 5] * 5)

        assert calculate_participation_score(history) == pytest.approx(0.5)
        assert calculate_participation_score([]) == 0.0

    def test_market_stability_neutral_cases(self):
        assert calculate_market_stability_score(make_history([10] * 13)) == 0.5
        assert calculate_market_stability_score(make_history([10] * 20)) == 0.5

    def test_market_stability_rewards_calming_market(self):
        calming = make_history([100, 120] * 7 + [110] * 7)
        heating = make_history([110] * 7 + [100, 120] * 7)

        assert calculate_market_stability_score(calming) > 0.5
        assert calculate_market_stability_score(heating) < 0.5

    def test_overall_market_health(self):
        assert calculate_overall_market_health(make_history([10] * 6)) == 0.5
        # liquidity 1.0, participation 1.0, stability neutral 0.5
        assert calculate_overall_market_health(make_history([10] * 10)) == pytest.approx(0.85)
