from __future__ import annotations

import json
import random

import pytest

from tickerdeck.config import Settings
from tickerdeck.dashboard import Dashboard
from tickerdeck.prefs import JsonFilePreferenceStore
from tickerdeck.quotes import SyntheticQuoteSource
from tickerdeck.symbols import TRACKED_SYMBOLS

from tests._helpers import ExplodingSource, StaticSource, UnusableSource, make_record


@pytest.fixture()
def dash(prefs):
    d = Dashboard(UnusableSource(), prefs, rng=random.Random(42), refresh_interval=3600)
    yield d
    d.stop()


def test_start_selects_first_record(dash):
    dash.start()
    assert dash.loop.running
    assert dash.store.selected_symbol == TRACKED_SYMBOLS[0].symbol
    assert dash.detail()["symbol"] == "AAPL"
    assert len(dash.cards()) == 7


def test_start_keeps_existing_selection(prefs):
    d = Dashboard(StaticSource([make_record("AAPL"), make_record("MSFT")]), prefs, refresh_interval=3600)
    d.store.install_snapshot([make_record("MSFT")], d.store.begin_refresh())
    d.store.select("MSFT")
    try:
        d.start()
        assert d.store.selected_symbol == "MSFT"
    finally:
        d.stop()


def test_handlers_bump_version(dash):
    dash.refresh()
    before = dash.version
    dash.search("tes")
    dash.sort("price")
    dash.set_timeframe("weekly")
    dash.set_chart_type("bar")
    dash.set_view_mode("table")
    assert dash.version == before + 5
    assert [row["symbol"] for row in dash.table()] == ["TSLA"]


def test_select_notifies_and_returns_record(dash):
    dash.refresh()
    dash.drain_notifications()
    rec = dash.select("nvda")
    assert rec is not None and rec.symbol == "NVDA"
    notes = dash.drain_notifications()
    assert [(n.message, n.level) for n in notes] == [("Selected NVDA", "info")]
    assert dash.drain_notifications() == []


def test_select_unknown_symbol_clears_detail(dash):
    dash.refresh()
    dash.select("AAPL")
    assert dash.select("ZZZZ") is None
    assert dash.detail()["symbol"] == "--"
    assert dash.chart()["prices"] == []


def test_toggle_favorite_notifications(dash):
    assert dash.toggle_favorite("aapl") is True
    assert dash.toggle_favorite("AAPL") is False
    notes = dash.drain_notifications()
    assert [(n.message, n.level) for n in notes] == [
        ("Added AAPL to watchlist", "success"),
        ("Removed AAPL from watchlist", "info"),
    ]
    with pytest.raises(ValueError):
        dash.toggle_favorite("***")


def test_remove_from_watchlist(dash):
    dash.refresh()
    dash.toggle_favorite("MSFT")
    assert dash.watchlist()["items"][0]["symbol"] == "MSFT"
    version = dash.version
    assert dash.remove_from_watchlist("MSFT") is True
    assert dash.version == version + 1
    assert dash.remove_from_watchlist("MSFT") is False
    assert dash.watchlist()["empty"] is True


def test_refresh_error_becomes_notification(prefs):
    d = Dashboard(ExplodingSource(), prefs)
    assert d.refresh() is False
    notes = d.drain_notifications()
    assert [(n.message, n.level) for n in notes] == [("Error refreshing data", "error")]
    assert d.status()["label"] == "Waiting for data"


def test_theme_toggle_recolors_chart(dash):
    dash.refresh()
    dash.select("AAPL")
    assert dash.toggle_theme() == "light"
    chart = dash.chart()
    assert chart["color"] in ("#059669", "#dc2626")


def test_render_contains_every_view(dash):
    dash.refresh()
    dash.select("GOOGL")
    state = dash.render(rng=random.Random(5))
    assert state["selected"] == "GOOGL"
    assert state["detail"]["symbol"] == "GOOGL"
    assert state["chart"]["symbol"] == "GOOGL"
    assert len(state["chart"]["prices"]) == 31
    assert state["status"]["source"] == "synthetic"
    assert set(state) >= {"cards", "table", "watchlist", "summary", "theme", "view_mode"}
    # rendering does not change state
    assert dash.render(rng=random.Random(5)) == state


def test_from_settings_uses_json_prefs(tmp_path):
    prefs_file = tmp_path / "prefs.json"
    settings = Settings(quote_provider="synthetic", prefs_file=prefs_file, refresh_interval=5)
    d = Dashboard.from_settings(settings)
    assert isinstance(d.orchestrator._source, SyntheticQuoteSource)
    assert d.loop.interval == 5
    d.toggle_favorite("AMZN")
    assert json.loads(json.loads(prefs_file.read_text())["watchlist"]) == ["AMZN"]
    assert JsonFilePreferenceStore(prefs_file).get("watchlist") == '["AMZN"]'
