"""
Unit tests for payload normalization
"""

import pytest
from datetime import date, datetime, timezone
from core.exceptions import NormalizationError
from ingestion.transformers.normalizer import (
    normalize_price_history,
    parse_float,
    parse_int,
    parse_mod_rank,
    parse_timestamp,
    summarize_payload,
)
from models.base import OrderSide

TARGET = date(2025, 8, 31)


class TestNormalizePriceHistory:
    """Flattening the provider snapshot into observation rows"""

    def test_one_row_per_valid_entry(self, sample_payload):
        rows = normalize_price_history(sample_payload, TARGET)

        assert len(rows) == 8
        assert all(row.order_side != "auction" for row in rows)

    def test_summary_counts_every_delivered_entry(self, sample_payload):
        assert summarize_payload(sample_payload) == (3, 9)

    def test_row_fields(self, sample_payload):
        rows = normalize_price_history(sample_payload, TARGET)
        row = next(r for r in rows if r.entry_id == "68b3a1c0e5f6a70012345602")

        assert row.item_name == "Arcane Energize"
        assert row.order_side == OrderSide.CLOSED
        assert row.mod_rank == 5
        assert row.date == TARGET
        assert row.timestamp == datetime(2025, 8, 31, tzinfo=timezone.utc)
        assert row.volume == 3
        assert row.min_price == 310
        assert row.avg_price == 325.0
        assert row.volume_weighted_avg_price == 326.2
        assert row.moving_average == 318.4
        assert row.donchian_top == 340
        assert row.donchian_bottom == 300

    def test_missing_mod_rank_defaults_to_minus_one(self, sample_payload):
        rows = normalize_price_history(sample_payload, TARGET)
        nikana = [r for r in rows if r.item_name == "Nikana Prime Set"]

        assert {r.mod_rank for r in nikana} == {-1}

    def test_optional_prices_stay_none(self, sample_payload):
        rows = normalize_price_history(sample_payload, TARGET)
        buy = next(r for r in rows if r.entry_id == "68b3a1c0e5f6a70012345603")

        assert buy.open_price is None
        assert buy.closed_price is None
        assert buy.donchian_top is None

    def test_skips_non_list_and_empty_entries(self):
        payload = {
            "Broken": "not-a-list",
            "Sparse": [None, {}, {"order_type": "sell", "volume": 2}],
        }
        rows = normalize_price_history(payload, TARGET)

        assert len(rows) == 1
        assert rows[0].item_name == "Sparse"
        assert rows[0].volume == 2

    def test_unstorable_item_names_are_skipped(self, caplog):
        payload = {
            "x" * 129: [{"order_type": "buy", "volume": 1}],
            "": [{"order_type": "sell", "volume": 1}],
            "x" * 128: [{"order_type": "closed", "volume": 3}],
        }

        with caplog.at_level("WARNING", logger="ingestion.transformers.normalizer"):
            rows = normalize_price_history(payload, TARGET)

        assert [row.item_name for row in rows] == ["x" * 128]
        assert "Skipped 2 of 3 entries" in caplog.text

    def test_timestamp_falls_back_to_midnight(self):
        rows = normalize_price_history({"Item": [{"order_type": "buy", "datetime": "garbage"}]}, TARGET)

        assert rows[0].timestamp == datetime(2025, 8, 31, tzinfo=timezone.utc)

    def test_non_mapping_payload_raises(self):
        with pytest.raises(NormalizationError) as exc_info:
            normalize_price_history(["not", "a", "mapping"], TARGET)

        assert exc_info.value.context["payload_type"] == "list"
        assert exc_info.value.context["date"] == "2025-08-31"


class TestParsers:
    """Lenient numeric and timestamp parsing"""

    @pytest.mark.parametrize("value, expected", [
        (12, 12.0),
        ("12.5", 12.5),
        ("  7 ", 7.0),
        ("", None),
        ("abc", None),
        (float("nan"), None),
        (float("inf"), None),
        (10 ** 400, None),
        (True, None),
        (None, None),
    ])
    def test_parse_float(self, value, expected):
        assert parse_float(value) == expected

    def test_parse_int_truncates(self):
        assert parse_int(12.9) == 12
        assert parse_int("-3.7") == -3
        assert parse_int(None) is None

    def test_parse_mod_rank(self):
        assert parse_mod_rank("10") == 10
        assert parse_mod_rank(None) == -1
        assert parse_mod_rank("max") == -1

    def test_parse_timestamp_zulu_and_offsets(self):
        assert parse_timestamp("2025-08-31T10:00:00Z", TARGET) == datetime(2025, 8, 31, 10, tzinfo=timezone.utc)
        assert parse_timestamp("2025-08-31T12:00:00+02:00", TARGET) == datetime(2025, 8, 31, 10, tzinfo=timezone.utc)

    def test_parse_timestamp_naive_is_utc(self):
        parsed = parse_timestamp("2025-08-31T10:00:00", TARGET)

        assert parsed.tzinfo is not None
        assert parsed == datetime(2025, 8, 31, 10, tzinfo=timezone.utc)
