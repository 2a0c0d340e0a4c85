from __future__ import annotations

from collections import deque
import random
from threading import Lock
from typing import Deque, Dict, List, Optional, Sequence

from tickerdeck.config import Settings
from tickerdeck.log import get_logger
from tickerdeck.models import Notification, QuoteRecord, SymbolDescriptor
from tickerdeck.prefs import JsonFilePreferenceStore, MemoryPreferenceStore, PreferenceStore
from tickerdeck.quotes import QuoteSource, build_quote_source
from tickerdeck.refresh import RefreshLoop, RefreshOrchestrator
from tickerdeck.store import SnapshotStore
from tickerdeck.symbols import TRACKED_SYMBOLS, normalize_symbol
from tickerdeck import views

logger = get_logger("dashboard")

_MAX_NOTIFICATIONS = 20


class Dashboard:
    """Owns the store and the refresh machinery and handles user actions.

    Every handler mutates the store and bumps ``version`` so that streaming
    consumers know when to re-render.
    """

    def __init__(
        self,
        source: QuoteSource,
        prefs: Optional[PreferenceStore] = None,
        *,
        descriptors: Sequence[SymbolDescriptor] = TRACKED_SYMBOLS,
        refresh_interval: float = 30,
        backfill_missing: bool = False,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.descriptors: List[SymbolDescriptor] = list(descriptors)
        self.store = SnapshotStore(prefs if prefs is not None else MemoryPreferenceStore())
        self._rng = rng
        self._notifications: Deque[Notification] = deque(maxlen=_MAX_NOTIFICATIONS)
        self._lock = Lock()
        self._version = 0
        self.orchestrator = RefreshOrchestrator(
            self.store,
            source,
            self.descriptors,
            backfill_missing=backfill_missing,
            rng=rng,
            on_refreshed=self._touch,
            on_error=self._on_refresh_error,
        )
        self.loop = RefreshLoop(self.orchestrator, interval=refresh_interval)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Dashboard":
        return cls(
            build_quote_source(settings),
            JsonFilePreferenceStore(settings.prefs_file),
            refresh_interval=settings.refresh_interval,
            backfill_missing=settings.backfill_missing,
        )

    # ---- lifecycle ----

    def start(self) -> None:
        self.refresh()
        if self.store.selected_symbol is None and self.store.snapshot:
            self.store.select(self.store.snapshot[0].symbol)
            self._touch()
        self.loop.start()
        logger.info("Dashboard started, refreshing every %ss", self.loop.interval)

    def stop(self) -> None:
        self.loop.stop(timeout=5)

    @property
    def version(self) -> int:
        return self._version

    def _touch(self) -> None:
        with self._lock:
            self._version += 1

    def notify(self, message: str, level: str = "info") -> None:
        with self._lock:
            self._notifications.append(Notification(message=message, level=level))

    def drain_notifications(self) -> List[Notification]:
        with self._lock:
            items = list(self._notifications)
            self._notifications.clear()
        return items

    def _on_refresh_error(self, exc: Exception) -> None:
        self.notify("Error refreshing data", "error")
        self._touch()

    # ---- handlers ----

    def refresh(self) -> bool:
        return self.orchestrator.refresh()

    def search(self, text: str) -> None:
        self.store.set_filter(text)
        self._touch()

    def sort(self, criterion: str) -> None:
        self.store.set_sort(criterion)
        self._touch()

    def select(self, symbol: str) -> Optional[QuoteRecord]:
        rec = self.store.select(normalize_symbol(symbol))
        if rec is not None:
            self.notify(f"Selected {rec.symbol}", "info")
        self._touch()
        return rec

    def toggle_favorite(self, symbol: str) -> bool:
        symbol = normalize_symbol(symbol)
        if not symbol:
            raise ValueError("Invalid symbol")
        member = self.store.toggle_watchlist(symbol)
        if member:
            self.notify(f"Added {symbol} to watchlist", "success")
        else:
            self.notify(f"Removed {symbol} from watchlist", "info")
        self._touch()
        return member

    def remove_from_watchlist(self, symbol: str) -> bool:
        removed = self.store.remove_from_watchlist(normalize_symbol(symbol))
        if removed:
            self._touch()
        return removed

    def set_timeframe(self, timeframe: str) -> None:
        self.store.set_timeframe(timeframe)
        self._touch()

    def set_chart_type(self, chart_type: str) -> None:
        self.store.set_chart_type(chart_type)
        self._touch()

    def set_view_mode(self, view_mode: str) -> None:
        self.store.set_view_mode(view_mode)
        self._touch()

    def toggle_theme(self) -> str:
        theme = self.store.toggle_theme()
        self._touch()
        return theme

    # ---- projections ----

    def cards(self) -> List[Dict[str, object]]:
        return views.project_cards(self.store.view_records(), self.store.watchlist, self.store.selected_symbol)

    def table(self) -> List[Dict[str, object]]:
        return views.project_table(self.store.view_records(), self.store.watchlist)

    def watchlist(self) -> Dict[str, object]:
        return views.project_watchlist(self.store.snapshot, self.store.watchlist)

    def detail(self) -> Dict[str, object]:
        return views.project_detail(self.store.selection)

    def chart(
        self,
        timeframe: Optional[str] = None,
        chart_type: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> Dict[str, object]:
        selection = self.store.selection
        return views.project_chart(
            selection.symbol if selection is not None else None,
            timeframe or self.store.timeframe,
            self.store.theme,
            chart_type or self.store.chart_type,
            rng=rng if rng is not None else self._rng,
        )

    def summary(self) -> Dict[str, object]:
        return views.project_market_summary(self.store.market_summary)

    def status(self) -> Dict[str, object]:
        return views.project_status(self.store.last_refresh, self.store.source, self.orchestrator.refreshing)

    def render(self, rng: Optional[random.Random] = None) -> Dict[str, object]:
        store = self.store
        return {
            "version": self._version,
            "selected": store.selected_symbol,
            "query": store.query,
            "sort": store.sort,
            "theme": store.theme,
            "timeframe": store.timeframe,
            "chart_type": store.chart_type,
            "view_mode": store.view_mode,
            "cards": self.cards(),
            "table": self.table(),
            "watchlist": self.watchlist(),
            "detail": self.detail(),
            "chart": self.chart(rng=rng),
            "summary": self.summary(),
            "status": self.status(),
        }
