"""
Pydantic schema for the provider's daily price-history snapshot
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, TypeAdapter


class PriceHistoryEntrySchema(BaseModel):
    """
    One trade-history entry as published by the provider.

    Only used to validate the response; the decoded JSON itself is what gets
    hashed and stored.
    """

    model_config = ConfigDict(extra="allow")

    datetime: str
    volume: float
    min_price: float
    max_price: float
    open_price: Optional[float] = None
    closed_price: Optional[float] = None
    avg_price: float
    wa_price: float
    median: float
    moving_avg: Optional[float] = None
    donch_top: Optional[float] = None
    donch_bot: Optional[float] = None
    id: str
    item_id: str
    order_type: str
    mod_rank: Optional[int] = None
    subtype: Optional[str] = None


# item name -> entries
DailyHistoryAdapter = TypeAdapter(Dict[str, List[PriceHistoryEntrySchema]])
