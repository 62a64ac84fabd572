"""
Pydantic schema for normalized observation rows
"""

import datetime as dt
from typing import Any, Dict, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field
from models.base import OrderSide

# Width of the item_name columns
MAX_ITEM_NAME_LENGTH = 128


class ObservationRow(BaseModel):
    """
    One trade-history sample, flattened from the provider payload.

    Uniqueness key: (date, timestamp, item_name, order_side, mod_rank).
    """

    model_config = ConfigDict(frozen=True)

    date: dt.date
    timestamp: dt.datetime
    item_name: str = Field(..., min_length=1, max_length=MAX_ITEM_NAME_LENGTH)
    order_side: OrderSide
    mod_rank: int = -1

    volume: Optional[int] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    open_price: Optional[int] = None
    closed_price: Optional[int] = None
    avg_price: Optional[float] = None
    volume_weighted_avg_price: Optional[float] = None
    median: Optional[float] = None
    moving_average: Optional[float] = None
    donchian_top: Optional[int] = None
    donchian_bottom: Optional[int] = None

    entry_id: Optional[str] = None

    @property
    def unique_key(self) -> Tuple[dt.date, dt.datetime, str, OrderSide, int]:
        return (self.date, self.timestamp, self.item_name, self.order_side, self.mod_rank)

    def to_db_dict(self) -> Dict[str, Any]:
        """Column mapping for the price_history_entries table"""
        return {
            "date": self.date,
            "datetime": self.timestamp,
            "item_name": self.item_name,
            "order_type": self.order_side,
            "mod_rank": self.mod_rank,
            "volume": self.volume,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "open_price": self.open_price,
            "closed_price": self.closed_price,
            "avg_price": self.avg_price,
            "wa_price": self.volume_weighted_avg_price,
            "median": self.median,
            "moving_avg": self.moving_average,
            "donch_top": self.donchian_top,
            "donch_bot": self.donchian_bottom,
            "entry_id": self.entry_id,
        }
