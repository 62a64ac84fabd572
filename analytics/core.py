"""
Windowed aggregation of daily item statistics.

Inputs are lists of DailyItemStats for one item+mod rank. Callers may pass
them in any order; every function here sorts by date itself.
"""

from typing import Iterable, List, Optional
import statistics

from analytics.types import AggregatedMetrics, DailyItemStats, WindowMetrics

WINDOW_DAYS = {"7d": 7, "14d": 14, "30d": 30}


def sort_descending(history: Iterable[DailyItemStats]) -> List[DailyItemStats]:
    """Most recent day first"""
    return sorted(history, key=lambda d: d.date, reverse=True)


def mean(values: List[float]) -> float:
    return sum(values) / len(values)


def coefficient_of_variation(values: List[float]) -> float:
    """Population stdev / mean; 0 when the mean is 0"""
    avg = mean(values)
    if avg == 0:
        return 0.0
    return statistics.pstdev(values) / avg


def compute_window(history_desc: List[DailyItemStats], days: int) -> WindowMetrics:
    """
    Statistics over the ``days`` most recent rows that are complete.

    The window is split in half by index over the most-recent-first rows and
    the trend is ``(second - first) / first``. The first half holds the newest
    days, so a price that has been rising gives a negative ``price_trend``.
    """
    valid = [d for d in history_desc[:days] if d.is_complete]
    if not valid:
        return WindowMetrics()

    total_volume = sum(d.volume for d in valid)
    vwap = sum(d.avg_price * d.volume for d in valid) / total_volume if total_volume else 0.0

    prices = [d.avg_price for d in valid]
    sma = mean(prices)

    half = len(valid) // 2
    first, second = valid[:half], valid[half:]

    first_price = mean([d.avg_price for d in first]) if first else 0.0
    second_price = mean([d.avg_price for d in second]) if second else 0.0
    price_trend = (second_price - first_price) / first_price if first_price > 0 else 0.0

    first_volume = sum(d.volume for d in first)
    second_volume = sum(d.volume for d in second)
    volume_trend = (second_volume - first_volume) / first_volume if first_volume > 0 else 0.0

    return WindowMetrics(
        volume=total_volume,
        vwap=vwap,
        volatility=coefficient_of_variation(prices),
        min_price=min(d.min_price for d in valid),
        max_price=max(d.max_price for d in valid),
        price_trend=price_trend,
        volume_trend=volume_trend,
        trend_strength=trend_strength(price_trend, volume_trend),
        sma=sma,
    )


def trend_strength(price_trend: float, volume_trend: float) -> float:
    """Price move amplified by volume move, capped at 1"""
    return min(abs(price_trend) * (1 + abs(volume_trend)) / 2, 1.0)


def compute_aggregated_metrics(history: Iterable[DailyItemStats]) -> AggregatedMetrics:
    history_desc = sort_descending(history)
    return AggregatedMetrics(
        windows={label: compute_window(history_desc, days) for label, days in WINDOW_DAYS.items()},
        latest=history_desc[0] if history_desc else None,
    )


def count_complete_days(history: Iterable[DailyItemStats]) -> int:
    return sum(1 for d in history if d.is_complete)


def _recent_prices(history: Iterable[DailyItemStats], days: int) -> Optional[List[float]]:
    recent = sort_descending(history)[:days]
    if len(recent) < days:
        return None
    prices = [d.avg_price for d in recent if d.avg_price is not None]
    return prices or None


def calculate_sma(history: Iterable[DailyItemStats], days: int) -> Optional[float]:
    """Simple moving average of the last ``days`` rows, None with fewer rows"""
    prices = _recent_prices(history, days)
    if prices is None:
        return None
    return mean(prices)


def calculate_ema(history: Iterable[DailyItemStats], days: int) -> Optional[float]:
    """
    Exponential moving average of the last ``days`` rows, None with fewer rows.

    Seeded with the oldest price in the window and smoothed toward the newest
    with multiplier ``2 / (days + 1)``.
    """
    prices = _recent_prices(history, days)
    if prices is None:
        return None

    multiplier = 2 / (days + 1)
    oldest_first = list(reversed(prices))
    ema = oldest_first[0]
    for price in oldest_first[1:]:
        ema = (price - ema) * multiplier + ema
    return ema
