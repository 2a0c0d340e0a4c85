from __future__ import annotations

import json

from tickerdeck.prefs import JsonFilePreferenceStore, MemoryPreferenceStore


def test_memory_store_roundtrip():
    prefs = MemoryPreferenceStore({"theme": "light"})
    assert prefs.get("theme") == "light"
    prefs.set("theme", "dark")
    assert prefs.get("theme") == "dark"
    assert prefs.get("missing") is None


def test_json_store_persists_across_instances(tmp_path):
    path = tmp_path / "preferences.json"
    JsonFilePreferenceStore(path).set("watchlist", '["AAPL"]')
    assert json.loads(path.read_text()) == {"watchlist": '["AAPL"]'}
    assert JsonFilePreferenceStore(path).get("watchlist") == '["AAPL"]'


def test_json_store_missing_file_is_empty(tmp_path):
    prefs = JsonFilePreferenceStore(tmp_path / "absent.json")
    assert prefs.get("theme") is None


def test_json_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "preferences.json"
    path.write_text("{not json")
    prefs = JsonFilePreferenceStore(path)
    assert prefs.get("theme") is None
    prefs.set("theme", "light")
    assert json.loads(path.read_text()) == {"theme": "light"}


def test_json_store_drops_non_string_values(tmp_path):
    path = tmp_path / "preferences.json"
    path.write_text(json.dumps({"theme": "light", "watchlist": ["AAPL"]}))
    prefs = JsonFilePreferenceStore(path)
    assert prefs.get("theme") == "light"
    assert prefs.get("watchlist") is None


def test_json_store_survives_unwritable_path(tmp_path):
    prefs = JsonFilePreferenceStore(tmp_path / "no" / "such" / "dir.json")
    prefs.set("theme", "light")
    assert prefs.get("theme") == "light"
