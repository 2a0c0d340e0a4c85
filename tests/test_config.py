from __future__ import annotations

from pathlib import Path

import pytest

from tickerdeck.config import Settings

_ENV_VARS = (
    "TD_QUOTE_PROVIDER",
    "ALPHAVANTAGE_API_KEY",
    "ALPHAVANTAGE_URL",
    "TD_HTTP_TIMEOUT",
    "TD_HTTP_RETRIES",
    "TD_REFRESH_INTERVAL",
    "TD_BACKFILL_MISSING",
    "TD_PREFS_FILE",
    "TD_LOG_LEVEL",
    "ALLOWED_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_match_dataclass():
    assert Settings.from_env() == Settings()


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("TD_QUOTE_PROVIDER", " Yahoo ")
    monkeypatch.setenv("ALPHAVANTAGE_API_KEY", "secret")
    monkeypatch.setenv("TD_HTTP_TIMEOUT", "3")
    monkeypatch.setenv("TD_HTTP_RETRIES", "4")
    monkeypatch.setenv("TD_REFRESH_INTERVAL", "10")
    monkeypatch.setenv("TD_BACKFILL_MISSING", "yes")
    monkeypatch.setenv("TD_PREFS_FILE", str(tmp_path / "p.json"))
    monkeypatch.setenv("TD_LOG_LEVEL", "debug")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example,")
    s = Settings.from_env()
    assert s.quote_provider == "yahoo"
    assert s.alphavantage_api_key == "secret"
    assert (s.http_timeout, s.http_retries, s.refresh_interval) == (3, 4, 10)
    assert s.backfill_missing is True
    assert s.prefs_file == Path(tmp_path / "p.json")
    assert s.log_level == "DEBUG"
    assert s.allowed_origins == ["https://a.example", "https://b.example"]


@pytest.mark.parametrize(
    "name, value, attr, expected",
    [
        ("TD_QUOTE_PROVIDER", "bloomberg", "quote_provider", "alphavantage"),
        ("TD_REFRESH_INTERVAL", "soon", "refresh_interval", 30),
        ("TD_REFRESH_INTERVAL", "0", "refresh_interval", 1),
        ("TD_HTTP_RETRIES", "-2", "http_retries", 1),
        ("TD_BACKFILL_MISSING", "off", "backfill_missing", False),
        ("ALPHAVANTAGE_API_KEY", "  ", "alphavantage_api_key", "demo"),
    ],
)
def test_invalid_values_fall_back(monkeypatch, name, value, attr, expected):
    monkeypatch.setenv(name, value)
    assert getattr(Settings.from_env(), attr) == expected


def test_default_prefs_file_lives_in_working_directory(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    prefs_file = Settings.from_env().prefs_file
    assert prefs_file == Path("preferences.json")
    assert prefs_file.resolve() == tmp_path.resolve() / "preferences.json"
