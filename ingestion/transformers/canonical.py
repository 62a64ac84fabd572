"""
Deterministic content fingerprint of a daily snapshot.

The digest ignores the order of the outer mapping and of every inner array,
and changes whenever an entry is added, removed or altered.
"""

from typing import Any, Dict, List, Optional, Tuple
import hashlib
import json

from ingestion.transformers.normalizer import (
    ORDER_SIDE_RANK,
    iter_valid_entries,
    parse_float,
    parse_mod_rank,
)

NUMERIC_FIELDS = (
    "volume",
    "min_price",
    "max_price",
    "open_price",
    "closed_price",
    "avg_price",
    "wa_price",
    "median",
    "moving_avg",
    "donch_top",
    "donch_bot",
)


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def flatten_entry(item_name: str, entry: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the semantically meaningful fields, in a fixed order"""
    entry_id = entry.get("id")
    record: Dict[str, Any] = {
        "itemName": item_name,
        "orderType": entry["order_type"],
        "modRank": parse_mod_rank(entry.get("mod_rank")),
        "datetime": _text_or_none(entry.get("datetime")),
    }
    for field in NUMERIC_FIELDS:
        record[field] = parse_float(entry.get(field))
    record["entry_id"] = str(entry_id) if entry_id else None
    return record


def _sort_key(record: Dict[str, Any]) -> Tuple:
    # None sorts first for the timestamp and the entry id
    timestamp = record["datetime"]
    entry_id = record["entry_id"]
    return (
        record["itemName"].lower(),
        ORDER_SIDE_RANK[record["orderType"]],
        record["modRank"],
        (timestamp is not None, timestamp or ""),
        (entry_id is not None, entry_id or ""),
    )


def canonicalize(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Flattened, canonically ordered entries of the payload"""
    flattened = [flatten_entry(item_name, entry) for item_name, entry in iter_valid_entries(payload)]
    # Full serialization as the final tie-breaker keeps the order independent
    # of input order even when two entries share the composite key
    flattened.sort(key=lambda r: (_sort_key(r), _serialize(r)))
    return flattened


def _serialize(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def compute_canonical_sha256(payload: Dict[str, Any]) -> str:
    """SHA-256 hex digest of the canonical encoding of ``payload``"""
    encoded = _serialize(canonicalize(payload)).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()
