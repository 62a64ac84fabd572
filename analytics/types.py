"""Value types shared by the analytics calculators."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from models.base import Recommendation, TrendDirection

WINDOW_LABELS = ("7d", "14d", "30d")


@dataclass(frozen=True)
class DailyItemStats:
    """One day of closed-side trading for an item+mod rank. Any figure may be missing."""

    date: date
    item_name: str
    mod_rank: int
    volume: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    avg_price: Optional[float] = None
    median: Optional[float] = None

    @property
    def is_complete(self) -> bool:
        """Volume, average, min and max are all present"""
        return (
            self.volume is not None
            and self.avg_price is not None
            and self.min_price is not None
            and self.max_price is not None
        )


@dataclass(frozen=True)
class WindowMetrics:
    """Rolling statistics over the most recent N days."""

    volume: float = 0.0
    vwap: float = 0.0
    volatility: float = 0.0             # Coefficient of variation of avg price
    min_price: float = 0.0
    max_price: float = 0.0
    price_trend: float = 0.0            # Newer half vs older half, signed
    volume_trend: float = 0.0
    trend_strength: float = 0.0         # 0-1
    sma: float = 0.0


@dataclass
class AggregatedMetrics:
    """7/14/30-day windows plus the most recent day regardless of window."""

    windows: Dict[str, WindowMetrics]
    latest: Optional[DailyItemStats] = None

    def __getitem__(self, label: str) -> WindowMetrics:
        return self.windows[label]

    @property
    def month(self) -> WindowMetrics:
        return self.windows["30d"]


@dataclass
class TrendFactors:
    strength: float                     # 0-1
    direction: TrendDirection
    momentum: float                     # 30d volume trend, signed and unbounded


@dataclass
class PerformanceFactors:
    rank: float                         # 1-100, 50 is neutral
    stability: float                    # 0-1
    volume_rank: float                  # 0-1
    volatility: float                   # 0-1


@dataclass
class PatternFactors:
    seasonal_strength: float            # 0-1
    confidence: float                   # 0-1


@dataclass
class MarketHealthFactors:
    overall_score: float                # 0-1


@dataclass
class FlipScoreInputs:
    trend: TrendFactors
    performance: PerformanceFactors
    pattern: PatternFactors
    market: MarketHealthFactors


@dataclass
class FlipScore:
    overall_score: float
    recommendation: Recommendation
    confidence: float


@dataclass
class FlipFactors:
    trend_strength: float
    performance_rank: float
    stability_score: float
    volume_rank: float
    volatility_score: float
    seasonal_multiplier: float
    market_health: float
    pattern_confidence: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "trendStrength": self.trend_strength,
            "performanceRank": self.performance_rank,
            "stabilityScore": self.stability_score,
            "volumeRank": self.volume_rank,
            "volatilityScore": self.volatility_score,
            "seasonalMultiplier": self.seasonal_multiplier,
            "marketHealth": self.market_health,
            "patternConfidence": self.pattern_confidence,
        }


@dataclass
class FlipResult:
    item_name: str
    mod_rank: int
    overall_score: float
    recommendation: Recommendation
    confidence: float
    factors: FlipFactors


@dataclass
class MarketTrendResult:
    item_name: str
    mod_rank: int
    date: date
    window: str
    trend_direction: TrendDirection
    trend_strength: float
    price_change: float
    volume_change: float
    sma: Optional[float]
    ema: Optional[float]
    volatility: float


@dataclass
class ItemPerformanceResult:
    item_name: str
    mod_rank: int
    date: date
    price_change_percent: Optional[float]
    volume_change_percent: float
    stability_score: float
    performance_rank: float
    liquidity_score: float
    volatility_score: float


@dataclass
class ItemAnalytics:
    """Everything computed for one item in a single pass."""

    flip: FlipResult
    market_trends: List[MarketTrendResult]
    performance: ItemPerformanceResult


@dataclass
class PopularItemScore:
    item_name: str
    mod_rank: int
    score: float
    metrics: Dict[str, Any] = field(default_factory=dict)
