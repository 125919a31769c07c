"""Tests for ledger ingestion and statistics replay."""

from __future__ import annotations

import json
from datetime import date

import pytest

from src.common.models import PriceType, Strategy
from src.pricing.history import (
    build_statistics,
    decode_ledger,
    load_change_records,
    load_ledger,
)


def _change(property_id: str, day: str, **extra) -> dict:
    return {"propertyId": property_id, "date": day, **extra}


class TestDecodeLedger:
    """Both on-disk shapes decode to one canonical ledger."""

    def test_single_run_object(self):
        ledger = decode_ledger({
            "lastRun": "2026-10-13",
            "changes": [_change("a", "2026-10-13"), _change("b", "2026-10-12")],
        })
        assert ledger.last_run == date(2026, 10, 13)
        assert [c.property_id for c in ledger.changes] == ["a", "b"]

    def test_array_of_runs_is_flattened(self):
        ledger = decode_ledger([
            {"lastRun": "2026-10-13", "changes": [_change("a", "2026-10-13")]},
            {"lastRun": "2026-10-06", "changes": [_change("b", "2026-10-06"), _change("c", "2026-10-06")]},
        ])
        assert ledger.last_run == date(2026, 10, 13)
        assert [c.property_id for c in ledger.changes] == ["a", "b", "c"]

    def test_run_without_changes_list(self):
        ledger = decode_ledger([{"lastRun": "2026-10-13"}, {"changes": "oops"}])
        assert ledger.changes == []

    @pytest.mark.parametrize("data", [None, 42, "ledger", True])
    def test_unrecognized_shape_is_empty(self, data):
        ledger = decode_ledger(data)
        assert ledger.changes == []
        assert ledger.last_run is None

    def test_malformed_entries_are_skipped(self):
        ledger = decode_ledger({
            "changes": [
                _change("a", "2026-10-13"),
                {"propertyId": "no-date"},
                "not an object",
                _change("b", "not-a-date"),
            ]
        })
        assert [c.property_id for c in ledger.changes] == ["a"]

    def test_legacy_url_key(self):
        ledger = decode_ledger({
            "changes": [{"url": "https://app.example.com/pricing?listings=42", "date": "2026-10-13"}]
        })
        assert ledger.changes[0].property_id == "https://app.example.com/pricing?listings=42"


class TestLoadLedger:

    def test_missing_file(self, tmp_path):
        assert load_ledger(tmp_path / "nope.json").changes == []

    def test_no_path(self):
        assert load_ledger(None).changes == []

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_ledger(path).changes == []

    def test_load_change_records(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({
            "lastRun": "2026-10-13",
            "changes": [_change("a", "2026-10-13"), _change("a", "2026-10-12")],
        }), encoding="utf-8")
        records = load_change_records(path)
        assert [r.date for r in records] == [date(2026, 10, 13), date(2026, 10, 12)]


class TestBuildStatistics:

    def test_groups_by_property(self, change_factory):
        stats = build_statistics([
            change_factory("a", date(2026, 10, 13)),
            change_factory("b", date(2026, 10, 13)),
            change_factory("a", date(2026, 10, 12)),
        ])
        assert set(stats) == {"a", "b"}

    def test_error_records_are_skipped(self, change_factory):
        stats = build_statistics([
            change_factory("a", date(2026, 10, 13), error="timeout",
                           base_price=(100, 90), occupancy={"7_day_occ": "10%"}),
        ])
        assert stats == {}

    def test_occupancy_is_normalized_in_ledger_order(self, change_factory):
        stats = build_statistics([
            change_factory("a", date(2026, 10, 13), occupancy={"7_day_occ": "80%", "30_day_occ": "N/A"}),
            change_factory("a", date(2026, 10, 12), occupancy={"7_day_occ": 0.7}),
            change_factory("a", date(2026, 10, 11)),
        ])["a"]
        assert [snap.seven_day for snap in stats.occupancy_history] == [0.8, 0.7]
        assert stats.occupancy_history[0].thirty_day == 0

    def test_price_history_per_type(self, change_factory):
        stats = build_statistics([
            change_factory("a", date(2026, 10, 13), min_price=(100, 102)),
            change_factory("a", date(2026, 10, 12), min_price=(98, 100), base_price=(150, 153)),
        ])["a"]
        assert [(p.price_type, p.after) for p in stats.price_history] == [
            (PriceType.MIN, 102),
            (PriceType.MIN, 100),
            (PriceType.BASE, 153),
        ]

    def test_inferred_adjustments(self, change_factory):
        stats = build_statistics([
            change_factory("a", date(2026, 10, 13), min_price=(100, 100), base_price=(200, 196)),
            change_factory("a", date(2026, 10, 12), min_price=(100, 103), base_price=(200, 200)),
            change_factory("a", date(2026, 10, 11), min_price=(100, 100.2), base_price=(200, 200)),
        ])["a"]
        history = stats.adjustment_history
        assert [adj.date for adj in history] == [
            date(2026, 10, 11), date(2026, 10, 12), date(2026, 10, 13),
        ]
        assert [adj.strategy for adj in history] == [
            Strategy.HOLD, Strategy.INCREASE, Strategy.DECREASE,
        ]
        assert history[1].min_price_percent_change == pytest.approx(3.0)
        assert history[2].base_price_percent_change == pytest.approx(-2.0)
        assert history[2].percent_change == pytest.approx(-2.0)

    def test_min_only_record_uses_min_change(self, change_factory):
        stats = build_statistics([
            change_factory("a", date(2026, 10, 13), min_price=(100, 105)),
        ])["a"]
        adj = stats.adjustment_history[0]
        assert adj.percent_change == pytest.approx(5.0)
        assert adj.base_price_percent_change == 0

    def test_zero_before_price_gives_no_adjustment(self, change_factory):
        stats = build_statistics([
            change_factory("a", date(2026, 10, 13), min_price=(0, 100)),
        ])["a"]
        assert stats.adjustment_history == []
        assert len(stats.price_history) == 1

    def test_adjustment_history_is_chronological(self, change_factory):
        stats = build_statistics([
            change_factory("a", date(2026, 10, 10), base_price=(100, 102)),
            change_factory("a", date(2026, 10, 13), base_price=(100, 98)),
            change_factory("a", date(2026, 10, 12), base_price=(100, 101)),
        ])["a"]
        dates = [adj.date for adj in stats.adjustment_history]
        assert dates == sorted(dates)

    def test_same_day_entries_keep_chronological_order(self, change_factory):
        # Ledger is newest-first: the 98 entry happened after the 102 entry.
        stats = build_statistics([
            change_factory("a", date(2026, 10, 13), base_price=(100, 98)),
            change_factory("a", date(2026, 10, 13), base_price=(100, 102)),
        ])["a"]
        assert [adj.strategy for adj in stats.adjustment_history] == [
            Strategy.INCREASE, Strategy.DECREASE,
        ]

    def test_last_update_is_max_date(self, change_factory):
        stats = build_statistics([
            change_factory("a", date(2026, 10, 10)),
            change_factory("a", date(2026, 10, 13)),
            change_factory("a", date(2026, 10, 12)),
        ])["a"]
        assert stats.last_update == date(2026, 10, 13)

    def test_latest_base_price(self, change_factory):
        stats = build_statistics([
            change_factory("a", date(2026, 10, 13), min_price=(80, 82)),
            change_factory("a", date(2026, 10, 12), base_price=(150, 120)),
            change_factory("a", date(2026, 10, 1), base_price=(200, 210)),
        ])["a"]
        assert stats.latest_base_price() == 120
