from __future__ import annotations

from datetime import datetime
import random
from threading import Event, Lock, Thread
from typing import Callable, List, Optional, Sequence

from tickerdeck.log import get_logger
from tickerdeck.models import QuoteRecord, SymbolDescriptor
from tickerdeck.quotes import QuoteSource
from tickerdeck.store import SnapshotStore
from tickerdeck.synthetic import generate_market_summary, generate_quote, generate_quotes

logger = get_logger("refresh")

SOURCE_LIVE = "live"
SOURCE_SYNTHETIC = "synthetic"


class RefreshOrchestrator:
    """Runs one refresh cycle: fetch, fall back, install, notify.

    Overlapping cycles are allowed. Each cycle takes a refresh id when it
    starts and the store only installs the result of the most recently
    started cycle, so a slow older fetch can never overwrite newer data.
    """

    def __init__(
        self,
        store: SnapshotStore,
        source: QuoteSource,
        descriptors: Sequence[SymbolDescriptor],
        *,
        backfill_missing: bool = False,
        rng: Optional[random.Random] = None,
        on_refreshed: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._source = source
        self._descriptors = list(descriptors)
        self._backfill_missing = backfill_missing
        self._rng = rng
        self._on_refreshed = on_refreshed
        self._on_error = on_error
        self._clock = clock
        self._inflight = 0
        self._inflight_lock = Lock()

    @property
    def refreshing(self) -> bool:
        return self._inflight > 0

    def _collect(self) -> tuple[List[QuoteRecord], str]:
        live = self._source.fetch_quotes(self._descriptors)
        if live is None:
            return generate_quotes(self._descriptors, self._rng), SOURCE_SYNTHETIC
        if not self._backfill_missing:
            return list(live), SOURCE_LIVE
        by_symbol = {rec.symbol: rec for rec in live}
        merged = []
        for descriptor in self._descriptors:
            rec = by_symbol.get(descriptor.symbol)
            if rec is None:
                logger.info("Backfilling %s with synthetic quote", descriptor.symbol)
                rec = generate_quote(descriptor, self._rng)
            merged.append(rec)
        return merged, SOURCE_LIVE

    def refresh(self) -> bool:
        refresh_id = self._store.begin_refresh()
        with self._inflight_lock:
            self._inflight += 1
        try:
            records, source = self._collect()
            installed = self._store.install_snapshot(
                records,
                refresh_id,
                summary=generate_market_summary(self._rng),
                source=source,
                refreshed_at=self._clock(),
            )
            if not installed:
                return False
            logger.info("Refresh %d installed %d %s quotes", refresh_id, len(records), source)
            if self._on_refreshed is not None:
                self._on_refreshed()
            return True
        except Exception as exc:
            logger.exception("Error refreshing data")
            if self._on_error is not None:
                self._on_error(exc)
            return False
        finally:
            with self._inflight_lock:
                self._inflight -= 1


class RefreshLoop:
    def __init__(self, orchestrator: RefreshOrchestrator, interval: float = 30) -> None:
        self._orchestrator = orchestrator
        self._interval = interval
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _tick(self) -> None:
        try:
            self._orchestrator.refresh()
        except Exception:
            logger.exception("Refresh loop tick failed")

    def _run(self) -> None:
        # one worker per tick; the store generation arbitrates overlapping cycles
        while not self._stop_event.wait(self._interval):
            Thread(target=self._tick, name="tickerdeck-refresh-tick", daemon=True).start()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = Thread(target=self._run, name="tickerdeck-refresh", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None
