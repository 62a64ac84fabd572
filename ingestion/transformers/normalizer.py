"""
Flatten the provider's daily snapshot into typed observation rows.

The entry filter (``iter_valid_entries``) is shared with the canonical hasher:
an entry dropped here is dropped there too, so the dedup hash always describes
exactly the rows that get persisted.
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple
from datetime import date, datetime, time, timezone
import logging
import math

from core.exceptions import NormalizationError
from models.base import OrderSide
from schemas.normalized import MAX_ITEM_NAME_LENGTH, ObservationRow

logger = logging.getLogger(__name__)

# Fixed ordering of sides, also used by the canonical sort
ORDER_SIDE_RANK = {
    OrderSide.BUY.value: 0,
    OrderSide.SELL.value: 1,
    OrderSide.CLOSED.value: 2,
}


def iter_valid_entries(payload: Dict[str, Any]) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """
    Yield ``(item_name, entry)`` for every entry with a recognized order side.

    Skipped: items whose name is empty or too long to store, non-list item
    values, empty entries and entries whose ``order_type`` is not
    buy/sell/closed.
    """
    for item_name, history in payload.items():
        if not item_name or len(item_name) > MAX_ITEM_NAME_LENGTH:
            continue
        if not isinstance(history, list):
            continue
        for entry in history:
            if not entry or not isinstance(entry, dict):
                continue
            side = entry.get("order_type")
            if not isinstance(side, str) or side not in ORDER_SIDE_RANK:
                continue
            yield item_name, entry


def summarize_payload(payload: Dict[str, Any]) -> Tuple[int, int]:
    """Return (items_count, entries_count) as delivered by the provider"""
    items_count = len(payload)
    entries_count = sum(len(v) for v in payload.values() if isinstance(v, list))
    return items_count, entries_count


def parse_float(value: Any) -> Optional[float]:
    """Finite number, or a non-empty string that parses to one; otherwise None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value) if math.isfinite(value) else None
        except OverflowError:
            # Integers beyond float range
            return None
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return None
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def parse_int(value: Any) -> Optional[int]:
    """Like ``parse_float`` but truncated toward zero"""
    parsed = parse_float(value)
    if parsed is None:
        return None
    return math.trunc(parsed)


def parse_mod_rank(value: Any) -> int:
    """Mod rank as an integer, -1 when absent or unparseable"""
    parsed = parse_int(value)
    return -1 if parsed is None else parsed


def parse_timestamp(value: Any, target_date: date) -> datetime:
    """
    Parse an ISO-8601 timestamp as an aware UTC datetime.

    Missing or unparseable values fall back to midnight UTC of the target date.
    """
    fallback = datetime.combine(target_date, time.min, tzinfo=timezone.utc)
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return fallback
    else:
        return fallback

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_entry(item_name: str, entry: Dict[str, Any], target_date: date) -> ObservationRow:
    entry_id = entry.get("id")
    return ObservationRow(
        date=target_date,
        timestamp=parse_timestamp(entry.get("datetime"), target_date),
        item_name=item_name,
        order_side=OrderSide(entry["order_type"]),
        mod_rank=parse_mod_rank(entry.get("mod_rank")),
        volume=parse_int(entry.get("volume")),
        min_price=parse_int(entry.get("min_price")),
        max_price=parse_int(entry.get("max_price")),
        open_price=parse_int(entry.get("open_price")),
        closed_price=parse_int(entry.get("closed_price")),
        avg_price=parse_float(entry.get("avg_price")),
        volume_weighted_avg_price=parse_float(entry.get("wa_price")),
        median=parse_float(entry.get("median")),
        moving_average=parse_float(entry.get("moving_avg")),
        donchian_top=parse_int(entry.get("donch_top")),
        donchian_bottom=parse_int(entry.get("donch_bot")),
        entry_id=str(entry_id) if entry_id else None,
    )


def normalize_price_history(payload: Dict[str, Any], target_date: date) -> List[ObservationRow]:
    """
    Produce one ObservationRow per valid entry of the snapshot.

    Pure: no I/O, no shared state.

    Raises:
        NormalizationError: If the payload is not a mapping
    """
    if not isinstance(payload, dict):
        raise NormalizationError(
            "Price history payload must be a mapping of item name to entries",
            context={
                "date": target_date.isoformat(),
                "payload_type": type(payload).__name__
            }
        )

    rows = [
        normalize_entry(item_name, entry, target_date)
        for item_name, entry in iter_valid_entries(payload)
    ]

    _, entries_count = summarize_payload(payload)
    skipped = entries_count - len(rows)
    if skipped:
        logger.warning(
            f"Skipped {skipped} of {entries_count} entries for {target_date.isoformat()} "
            f"that cannot be stored as rows"
        )
    return rows
