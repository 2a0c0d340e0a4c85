"""In-memory dashboard state.

The store owns the current snapshot, the selected ticker, the watchlist and
the filter/sort/display parameters. The snapshot is only ever replaced as a
whole, and the selection is kept as a ticker key that is looked up against
whichever snapshot is current at read time.
"""

from __future__ import annotations

from datetime import datetime
import json
from threading import RLock
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from tickerdeck.log import get_logger
from tickerdeck.models import MarketSummary, QuoteRecord
from tickerdeck.prefs import THEME_KEY, WATCHLIST_KEY, PreferenceStore
from tickerdeck.symbols import normalize_symbol

logger = get_logger("store")

THEMES = ("dark", "light")
TIMEFRAMES: Dict[str, int] = {"daily": 30, "weekly": 90, "yearly": 365}
CHART_TYPES = ("line", "bar")
VIEW_MODES = ("grid", "table")

_SORT_KEYS: Dict[str, Tuple[Callable[[QuoteRecord], object], bool]] = {
    "symbol": (lambda rec: rec.symbol, False),
    "price": (lambda rec: rec.price, True),
    "change": (lambda rec: rec.change, True),
    "volume": (lambda rec: rec.volume_value, True),
}
SORT_CRITERIA = ("",) + tuple(_SORT_KEYS)


def filter_records(records: Sequence[QuoteRecord], query: str) -> List[QuoteRecord]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(records)
    return [
        rec for rec in records
        if needle in rec.symbol.lower() or needle in rec.name.lower()
    ]


def sort_records(records: Sequence[QuoteRecord], criterion: str) -> List[QuoteRecord]:
    if not criterion:
        return list(records)
    if criterion not in _SORT_KEYS:
        raise ValueError(f"Unknown sort criterion: {criterion!r}")
    key, reverse = _SORT_KEYS[criterion]
    return sorted(records, key=key, reverse=reverse)


def _load_watchlist(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed persisted watchlist")
        return []
    if not isinstance(items, list):
        return []
    cleaned: List[str] = []
    for item in items:
        sym = normalize_symbol(item)
        if sym and sym not in cleaned:
            cleaned.append(sym)
    return cleaned


class SnapshotStore:
    def __init__(self, prefs: PreferenceStore) -> None:
        self._lock = RLock()
        self._prefs = prefs
        self._snapshot: Tuple[QuoteRecord, ...] = ()
        self._selected: Optional[str] = None
        self._watchlist: List[str] = _load_watchlist(prefs.get(WATCHLIST_KEY))
        theme = prefs.get(THEME_KEY)
        self._theme = theme if theme in THEMES else "dark"
        self._query = ""
        self._sort = ""
        self._timeframe = "daily"
        self._chart_type = "line"
        self._view_mode = "grid"
        self._summary: Optional[MarketSummary] = None
        self._last_refresh: Optional[datetime] = None
        self._source: Optional[str] = None
        self._generation = 0

    # ---- read accessors ----

    @property
    def snapshot(self) -> Tuple[QuoteRecord, ...]:
        return self._snapshot

    @property
    def selected_symbol(self) -> Optional[str]:
        return self._selected

    @property
    def selection(self) -> Optional[QuoteRecord]:
        with self._lock:
            if self._selected is None:
                return None
            return self.record(self._selected)

    @property
    def watchlist(self) -> List[str]:
        with self._lock:
            return list(self._watchlist)

    @property
    def query(self) -> str:
        return self._query

    @property
    def sort(self) -> str:
        return self._sort

    @property
    def theme(self) -> str:
        return self._theme

    @property
    def timeframe(self) -> str:
        return self._timeframe

    @property
    def chart_type(self) -> str:
        return self._chart_type

    @property
    def view_mode(self) -> str:
        return self._view_mode

    @property
    def market_summary(self) -> Optional[MarketSummary]:
        return self._summary

    @property
    def last_refresh(self) -> Optional[datetime]:
        return self._last_refresh

    @property
    def source(self) -> Optional[str]:
        return self._source

    @property
    def generation(self) -> int:
        return self._generation

    def record(self, symbol: str) -> Optional[QuoteRecord]:
        for rec in self._snapshot:
            if rec.symbol == symbol:
                return rec
        return None

    def view_records(self) -> List[QuoteRecord]:
        with self._lock:
            snapshot, query, criterion = self._snapshot, self._query, self._sort
        return sort_records(filter_records(snapshot, query), criterion)

    # ---- refresh ----

    def begin_refresh(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def install_snapshot(
        self,
        records: Sequence[QuoteRecord],
        refresh_id: int,
        *,
        summary: Optional[MarketSummary] = None,
        source: Optional[str] = None,
        refreshed_at: Optional[datetime] = None,
    ) -> bool:
        """Replace the snapshot unless a newer refresh has started since ``refresh_id``."""
        with self._lock:
            if refresh_id != self._generation:
                logger.debug(
                    "Discarding refresh %d, refresh %d started later", refresh_id, self._generation
                )
                return False
            self._snapshot = tuple(records)
            if summary is not None:
                self._summary = summary
            self._source = source
            self._last_refresh = refreshed_at or datetime.now()
            if self._selected is not None and self.record(self._selected) is None:
                logger.info("Selected symbol %s missing from new snapshot, clearing selection", self._selected)
                self._selected = None
            return True

    # ---- mutators ----

    def select(self, symbol: Optional[str]) -> Optional[QuoteRecord]:
        with self._lock:
            rec = self.record(symbol) if symbol else None
            self._selected = rec.symbol if rec is not None else None
            return rec

    def toggle_watchlist(self, symbol: str) -> bool:
        with self._lock:
            if symbol in self._watchlist:
                self._watchlist = [s for s in self._watchlist if s != symbol]
                member = False
            else:
                self._watchlist = self._watchlist + [symbol]
                member = True
            self._persist_watchlist()
            return member

    def remove_from_watchlist(self, symbol: str) -> bool:
        with self._lock:
            if symbol not in self._watchlist:
                return False
            self._watchlist = [s for s in self._watchlist if s != symbol]
            self._persist_watchlist()
            return True

    def _persist_watchlist(self) -> None:
        self._prefs.set(WATCHLIST_KEY, json.dumps(self._watchlist))

    def set_filter(self, query: str) -> None:
        self._query = query or ""

    def set_sort(self, criterion: str) -> None:
        criterion = (criterion or "").strip().lower()
        if criterion not in SORT_CRITERIA:
            raise ValueError(f"Unknown sort criterion: {criterion!r}")
        self._sort = criterion

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme!r}")
        with self._lock:
            self._theme = theme
            self._prefs.set(THEME_KEY, theme)

    def toggle_theme(self) -> str:
        with self._lock:
            self.set_theme("dark" if self._theme == "light" else "light")
            return self._theme

    def set_timeframe(self, timeframe: str) -> None:
        if timeframe not in TIMEFRAMES:
            raise ValueError(f"Unknown timeframe: {timeframe!r}")
        self._timeframe = timeframe

    def set_chart_type(self, chart_type: str) -> None:
        if chart_type not in CHART_TYPES:
            raise ValueError(f"Unknown chart type: {chart_type!r}")
        self._chart_type = chart_type

    def set_view_mode(self, view_mode: str) -> None:
        if view_mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode: {view_mode!r}")
        self._view_mode = view_mode
