from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from tickerdeck.log import get_logger

logger = get_logger("prefs")

THEME_KEY = "theme"
WATCHLIST_KEY = "watchlist"


class PreferenceStore:
    """String key/value store for user preferences."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryPreferenceStore(PreferenceStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFilePreferenceStore(PreferenceStore):
    """Keeps all preferences as one JSON object in a file.

    A missing or corrupt file behaves like an empty store. Write failures are
    logged and otherwise ignored so a read-only disk never breaks the UI.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = Lock()
        self._data: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        try:
            if self._path.exists():
                raw = json.loads(self._path.read_text())
                if isinstance(raw, dict):
                    return {str(k): v for k, v in raw.items() if isinstance(v, str)}
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable preferences file %s: %s", self._path, exc)
        return {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            try:
                self._path.write_text(json.dumps(self._data, indent=2))
            except OSError as exc:
                logger.warning("Could not write preferences to %s: %s", self._path, exc)
