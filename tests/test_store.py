from __future__ import annotations

import json

import pytest

from tickerdeck.prefs import MemoryPreferenceStore
from tickerdeck.store import SnapshotStore, filter_records, sort_records

from tests._helpers import make_record


@pytest.fixture()
def fixture_records():
    return [
        make_record("AAPL", "Apple Inc.", price=185.50, change=1.25, volume="52,000,000"),
        make_record("TSLA", "Tesla Inc.", price=248.50, change=-3.10, volume="101,500,000"),
        make_record("MSFT", "Microsoft Corp.", price=378.90, change=0.40, volume="9,800,000"),
    ]


@pytest.fixture()
def store(prefs, fixture_records):
    s = SnapshotStore(prefs)
    s.install_snapshot(fixture_records, s.begin_refresh())
    return s


def test_filter_then_sort_by_price(store):
    store.set_filter("a")
    store.set_sort("price")
    assert [r.symbol for r in store.view_records()] == ["TSLA", "AAPL"]


def test_filter_is_case_insensitive_union_of_symbol_and_name(fixture_records):
    assert [r.symbol for r in filter_records(fixture_records, "MICRO")] == ["MSFT"]
    assert [r.symbol for r in filter_records(fixture_records, "sla")] == ["TSLA"]
    assert [r.symbol for r in filter_records(fixture_records, "inc")] == ["AAPL", "TSLA"]
    assert [r.symbol for r in filter_records(fixture_records, "   ")] == ["AAPL", "TSLA", "MSFT"]
    assert filter_records(fixture_records, "zzz") == []


@pytest.mark.parametrize(
    "criterion, expected",
    [
        ("", ["AAPL", "TSLA", "MSFT"]),
        ("symbol", ["AAPL", "MSFT", "TSLA"]),
        ("price", ["MSFT", "TSLA", "AAPL"]),
        ("change", ["AAPL", "MSFT", "TSLA"]),
        ("volume", ["TSLA", "AAPL", "MSFT"]),
    ],
)
def test_sort_criteria(fixture_records, criterion, expected):
    assert [r.symbol for r in sort_records(fixture_records, criterion)] == expected


def test_unknown_sort_is_rejected(store):
    with pytest.raises(ValueError):
        store.set_sort("market_cap")
    assert store.sort == ""


def test_select_resolves_by_ticker(store):
    rec = store.select("TSLA")
    assert rec is not None and rec.symbol == "TSLA"
    assert store.selection is rec


def test_select_unknown_ticker_clears_selection(store):
    store.select("AAPL")
    assert store.select("NFLX") is None
    assert store.selection is None
    assert store.selected_symbol is None


def test_reconciliation_follows_new_snapshot(store):
    store.select("AAPL")
    updated = make_record("AAPL", "Apple Inc.", price=190.00, change=5.75)
    assert store.install_snapshot([updated, make_record("TSLA")], store.begin_refresh())
    assert store.selected_symbol == "AAPL"
    assert store.selection is updated
    assert store.selection.price == 190.00


def test_reconciliation_miss_clears_selection(store):
    store.select("MSFT")
    store.install_snapshot([make_record("AAPL")], store.begin_refresh())
    assert store.selected_symbol is None
    assert store.selection is None


def test_stale_refresh_is_discarded(store, fixture_records):
    older = store.begin_refresh()
    assert store.generation == older
    newer = store.begin_refresh()
    assert store.install_snapshot([make_record("NEW")], newer)
    assert not store.install_snapshot([make_record("OLD")], older)
    assert [r.symbol for r in store.snapshot] == ["NEW"]


def test_watchlist_toggle_is_its_own_inverse(prefs, store):
    before = set(store.watchlist)
    assert store.toggle_watchlist("AAPL") is True
    assert json.loads(prefs.get("watchlist")) == store.watchlist == ["AAPL"]
    assert store.toggle_watchlist("AAPL") is False
    assert set(store.watchlist) == before
    assert json.loads(prefs.get("watchlist")) == store.watchlist


def test_watchlist_is_independent_of_snapshot(store):
    store.toggle_watchlist("NFLX")
    snapshot = store.snapshot
    store.toggle_watchlist("AAPL")
    assert store.snapshot is snapshot
    assert store.watchlist == ["NFLX", "AAPL"]


def test_remove_from_watchlist(prefs, store):
    store.toggle_watchlist("AAPL")
    assert store.remove_from_watchlist("AAPL") is True
    assert store.remove_from_watchlist("AAPL") is False
    assert json.loads(prefs.get("watchlist")) == []


def test_preferences_loaded_at_startup():
    prefs = MemoryPreferenceStore({"theme": "light", "watchlist": '["aapl", "TSLA", "AAPL", ""]'})
    s = SnapshotStore(prefs)
    assert s.theme == "light"
    assert s.watchlist == ["AAPL", "TSLA"]


@pytest.mark.parametrize(
    "stored",
    [
        {},
        {"theme": "purple", "watchlist": "not json"},
        {"watchlist": '{"AAPL": 1}'},
    ],
)
def test_preferences_default_when_missing_or_invalid(stored):
    s = SnapshotStore(MemoryPreferenceStore(stored))
    assert s.theme == "dark"
    assert s.watchlist == []


def test_theme_toggle_persists(prefs, store):
    assert store.toggle_theme() == "light"
    assert prefs.get("theme") == "light"
    assert store.toggle_theme() == "dark"
    assert prefs.get("theme") == "dark"
    with pytest.raises(ValueError):
        store.set_theme("sepia")


def test_display_parameters_validate(store):
    store.set_timeframe("yearly")
    store.set_chart_type("bar")
    store.set_view_mode("table")
    assert (store.timeframe, store.chart_type, store.view_mode) == ("yearly", "bar", "table")
    for setter, value in (
        (store.set_timeframe, "hourly"),
        (store.set_chart_type, "candles"),
        (store.set_view_mode, "list"),
    ):
        with pytest.raises(ValueError):
            setter(value)
