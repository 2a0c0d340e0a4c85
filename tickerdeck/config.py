from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import List


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return max(minimum, int(raw))
    except ValueError:
        return default


_DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8501",
    "http://127.0.0.1:8501",
]
_DEFAULT_PREFS_FILE = Path("preferences.json")

QUOTE_PROVIDERS = ("alphavantage", "yahoo", "synthetic")


@dataclass(frozen=True)
class Settings:
    quote_provider: str = "alphavantage"
    alphavantage_api_key: str = "demo"
    alphavantage_url: str = "https://www.alphavantage.co/query"
    http_timeout: int = 8
    http_retries: int = 2
    refresh_interval: int = 30
    backfill_missing: bool = False
    prefs_file: Path = _DEFAULT_PREFS_FILE
    log_level: str = "INFO"
    allowed_origins: List[str] = field(default_factory=lambda: list(_DEFAULT_ALLOWED_ORIGINS))

    @classmethod
    def from_env(cls) -> "Settings":
        provider = os.getenv("TD_QUOTE_PROVIDER", "alphavantage").strip().lower()
        if provider not in QUOTE_PROVIDERS:
            provider = "alphavantage"
        origins = [
            item.strip()
            for item in os.getenv("ALLOWED_ORIGINS", ",".join(_DEFAULT_ALLOWED_ORIGINS)).split(",")
            if item.strip()
        ]
        prefs_file = os.getenv("TD_PREFS_FILE", "").strip()
        return cls(
            quote_provider=provider,
            alphavantage_api_key=os.getenv("ALPHAVANTAGE_API_KEY", "demo").strip() or "demo",
            alphavantage_url=os.getenv("ALPHAVANTAGE_URL", cls.alphavantage_url).strip(),
            http_timeout=_env_int("TD_HTTP_TIMEOUT", 8, minimum=1),
            http_retries=_env_int("TD_HTTP_RETRIES", 2, minimum=1),
            refresh_interval=_env_int("TD_REFRESH_INTERVAL", 30, minimum=1),
            backfill_missing=_env_bool("TD_BACKFILL_MISSING", False),
            prefs_file=Path(prefs_file) if prefs_file else _DEFAULT_PREFS_FILE,
            log_level=os.getenv("TD_LOG_LEVEL", "INFO").strip().upper() or "INFO",
            allowed_origins=origins,
        )
