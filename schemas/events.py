"""
Event payloads published on the event channel.

Payloads go over the wire in camelCase (``itemsCount``, ``topRecommendations``);
Python code uses the snake_case attribute names.
"""

import datetime as dt
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

INGESTION_COMPLETED = "ingestion.completed"
ANALYTICS_COMPLETED = "analytics.completed"


class EventPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_message(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys"""
        return self.model_dump(mode="json", by_alias=True)


class IngestionCompletedEvent(EventPayload):
    source: str
    date: dt.date
    items_count: int
    entries_count: int
    sha256: str


class TopFlipRecommendation(EventPayload):
    item_name: str
    mod_rank: int
    rank: int = Field(..., ge=1)
    overall_score: float
    recommendation: str
    confidence: float
    factors: Dict[str, float] = Field(default_factory=dict)


class MarketTrendSummary(EventPayload):
    item_name: str
    mod_rank: int
    window: str
    trend_direction: str
    trend_strength: float
    price_change: float
    volume_change: float
    sma: Optional[float] = None
    ema: Optional[float] = None
    volatility: float


class ItemPerformanceSummary(EventPayload):
    item_name: str
    mod_rank: int
    price_change_percent: Optional[float] = None
    volume_change_percent: float
    stability_score: float
    performance_rank: float
    liquidity_score: float
    volatility_score: float


class AnalyticsSummary(EventPayload):
    buy_count: int = 0
    hold_count: int = 0
    avoid_count: int = 0
    average_score: float = 0.0


class AnalyticsCompletedEvent(EventPayload):
    date: dt.date
    count: int
    top_recommendations: List[TopFlipRecommendation] = Field(default_factory=list)
    market_trends: List[MarketTrendSummary] = Field(default_factory=list)
    item_performances: List[ItemPerformanceSummary] = Field(default_factory=list)
    summary: AnalyticsSummary = Field(default_factory=AnalyticsSummary)
