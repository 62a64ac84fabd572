from sqlalchemy import Column, String, Integer, Float, Date, DateTime, Enum, Index
from sqlalchemy.sql import func
from models.base import Base, IdType, JSONType, Recommendation, TrendDirection


class FlipRecommendation(Base):
    """
    Ranked flip recommendation for one item+mod rank on one date.

    Rows for a date are always replaced as a whole so the rank column stays
    consistent; they are never patched in place.
    """
    __tablename__ = "flip_recommendations"

    id = Column(IdType, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    item_name = Column(String(128), nullable=False)
    mod_rank = Column(Integer, nullable=False, default=-1)

    score = Column(Float, nullable=False)
    rank = Column(Integer, nullable=False)
    recommendation = Column(Enum(Recommendation), nullable=False)
    confidence = Column(Float, nullable=False)

    # Factor breakdown
    trend_strength = Column(Float, nullable=True)
    performance_rank = Column(Float, nullable=True)
    stability_score = Column(Float, nullable=True)
    volume_rank = Column(Float, nullable=True)
    volatility_score = Column(Float, nullable=True)
    seasonal_multiplier = Column(Float, nullable=True)
    market_health = Column(Float, nullable=True)
    pattern_confidence = Column(Float, nullable=True)
    factors_json = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("flip_recommendations_date_item_mod_rank_idx", "date", "item_name", "mod_rank", unique=True),
        Index("flip_recommendations_date_rank_idx", "date", "rank"),
    )


class MarketTrend(Base):
    """Per-window trend analysis for one item+mod rank on one date."""
    __tablename__ = "market_trends"

    id = Column(IdType, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    item_name = Column(String(128), nullable=False)
    mod_rank = Column(Integer, nullable=False, default=-1)
    window = Column("trend_window", String(8), nullable=False)  # 7d, 14d, 30d

    trend_direction = Column(Enum(TrendDirection), nullable=False)
    trend_strength = Column(Float, nullable=False)
    price_change = Column(Float, nullable=False)
    volume_change = Column(Float, nullable=False)
    sma = Column(Float, nullable=True)
    ema = Column(Float, nullable=True)
    volatility = Column(Float, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("market_trends_date_item_window_idx", "date", "item_name", "mod_rank", "trend_window", unique=True),
    )


class ItemPerformance(Base):
    """Performance summary for one item+mod rank on one date."""
    __tablename__ = "item_performance"

    id = Column(IdType, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    item_name = Column(String(128), nullable=False)
    mod_rank = Column(Integer, nullable=False, default=-1)

    price_change_percent = Column(Float, nullable=True)
    volume_change_percent = Column(Float, nullable=False)
    stability_score = Column(Float, nullable=False)
    performance_rank = Column(Float, nullable=False)
    liquidity_score = Column(Float, nullable=False)
    volatility_score = Column(Float, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("item_performance_date_item_mod_rank_idx", "date", "item_name", "mod_rank", unique=True),
    )


class PopularItem(Base):
    """Daily popularity ranking (liquidity, spread and volatility blend)."""
    __tablename__ = "popular_items"

    id = Column(IdType, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    item_name = Column(String(128), nullable=False)
    mod_rank = Column(Integer, nullable=False, default=-1)
    score = Column(Float, nullable=False)
    rank = Column(Integer, nullable=False)
    metrics_json = Column(JSONType, nullable=True)

    __table_args__ = (
        Index("popular_items_date_item_mod_rank_idx", "date", "item_name", "mod_rank", unique=True),
        Index("popular_items_rank_idx", "rank"),
    )
