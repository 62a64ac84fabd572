"""
SQLAlchemy ORM models for database tables.

Models:
    base: Declarative base, portable column types and shared enums
    ingestion_run: Run tracking (one row per source + identifier)
    price_history: Raw daily snapshots and normalized observation rows
    analytics: Flip recommendations, market trends, item performance, popular items

Ownership:
    The ingestion runner owns IngestionRun, PriceHistoryRaw and
    PriceHistoryEntry. The analytics runner owns the analytics tables.
    They communicate only through the completion event and the stored
    observation rows.

Usage:
    from models import Base, IngestionRun, PriceHistoryEntry
    from models.base import RunStatus, OrderSide
"""

from models.base import Base, RunStatus, OrderSide, Recommendation, TrendDirection
from models.ingestion_run import IngestionRun
from models.price_history import PriceHistoryRaw, PriceHistoryEntry
from models.analytics import FlipRecommendation, MarketTrend, ItemPerformance, PopularItem

__all__ = [
    "Base",
    "RunStatus",
    "OrderSide",
    "Recommendation",
    "TrendDirection",
    "IngestionRun",
    "PriceHistoryRaw",
    "PriceHistoryEntry",
    "FlipRecommendation",
    "MarketTrend",
    "ItemPerformance",
    "PopularItem",
]
