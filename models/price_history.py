from sqlalchemy import Column, String, Integer, Float, Date, DateTime, Enum, Text, Index
from sqlalchemy.sql import func
from models.base import Base, IdType, JSONType, OrderSide


class PriceHistoryRaw(Base):
    """
    Raw daily snapshot exactly as the provider delivered it.

    Purpose:
    - Replay/reprocessing without re-fetching
    - Data lineage for the normalized rows

    Design:
    - One row per date (re-ingestion of changed content overwrites it)
    - sha256 is the canonical content hash; indexed but not unique, since two
      dates may legitimately carry identical content
    """
    __tablename__ = "price_history_raw"

    date = Column(Date, primary_key=True)
    sha256 = Column(String(64), nullable=False, index=True)
    payload = Column(JSONType, nullable=False)
    items_count = Column(Integer, nullable=True)
    entries_count = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class PriceHistoryEntry(Base):
    """
    One normalized trade-history observation.

    Immutable once written except through the upsert, which overwrites every
    numeric field on conflict of the uniqueness key
    (date, datetime, item_name, order_type, mod_rank).
    """
    __tablename__ = "price_history_entries"

    id = Column(IdType, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    datetime = Column(DateTime(timezone=True), nullable=False)
    item_name = Column(String(128), nullable=False)
    order_type = Column(Enum(OrderSide), nullable=False)
    mod_rank = Column(Integer, nullable=False, default=-1)

    volume = Column(Integer, nullable=True)
    min_price = Column(Integer, nullable=True)
    max_price = Column(Integer, nullable=True)
    open_price = Column(Integer, nullable=True)
    closed_price = Column(Integer, nullable=True)
    avg_price = Column(Float, nullable=True)
    wa_price = Column(Float, nullable=True)
    median = Column(Float, nullable=True)
    moving_avg = Column(Float, nullable=True)
    donch_top = Column(Integer, nullable=True)
    donch_bot = Column(Integer, nullable=True)

    entry_id = Column(Text, nullable=True)  # provider row id (as-is)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index(
            "price_history_entries_unique_idx",
            "date", "datetime", "item_name", "order_type", "mod_rank",
            unique=True,
        ),
        Index("price_history_entries_item_date_idx", "item_name", "date"),
        Index("price_history_entries_order_type_date_idx", "order_type", "date"),
    )
