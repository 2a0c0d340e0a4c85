"""HTTP surface for the dashboard engine.

Run locally:
    uvicorn tickerdeck.main:app --reload --port 8000
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
import json
from threading import Event
import time
from typing import Dict, Iterator, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from tickerdeck.config import Settings
from tickerdeck.dashboard import Dashboard
from tickerdeck.log import get_logger, setup_logging
from tickerdeck.store import CHART_TYPES, TIMEFRAMES
from tickerdeck.symbols import normalize_symbol

logger = get_logger("api")

_STREAM_TICK = 1.0
_KEEPALIVE_SECONDS = 30


def _require_symbol(symbol: str) -> str:
    symbol = normalize_symbol(symbol)
    if not symbol:
        raise HTTPException(status_code=400, detail="Invalid symbol")
    return symbol


def view_events(
    dashboard: Dashboard,
    stop_event: Event,
    *,
    tick: float = _STREAM_TICK,
    keepalive: float = _KEEPALIVE_SECONDS,
) -> Iterator[str]:
    """SSE frames: the current views first, then again on every version change.

    Ends once ``stop_event`` is set, after the initial frame at the latest.
    """
    last_version = dashboard.version
    yield _sse_frame(dashboard.render())
    last_keepalive = time.time()
    while not stop_event.wait(tick):
        version = dashboard.version
        if version != last_version:
            last_version = version
            yield _sse_frame(dashboard.render())
        now = time.time()
        if now - last_keepalive >= keepalive:
            yield ": keep-alive\n\n"
            last_keepalive = now


def _sse_frame(payload: Dict[str, object]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def create_app(
    dashboard: Optional[Dashboard] = None,
    *,
    settings: Optional[Settings] = None,
    start_refresh: bool = True,
) -> FastAPI:
    settings = settings or Settings.from_env()
    dashboard = dashboard or Dashboard.from_settings(settings)
    stop_event = Event()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_refresh:
            await asyncio.to_thread(dashboard.start)
        yield
        stop_event.set()
        if start_refresh:
            await asyncio.to_thread(dashboard.stop)

    app = FastAPI(title="Tickerdeck API", lifespan=lifespan)
    app.state.dashboard = dashboard
    app.state.stream_stop = stop_event
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health():
        store = dashboard.store
        return {
            "status": "ok",
            "ts": datetime.now().isoformat(),
            "source": store.source,
            "last_refresh": store.last_refresh.isoformat() if store.last_refresh else None,
            "symbols": len(store.snapshot),
        }

    @app.get("/api/symbols")
    def symbols():
        return {"symbols": [asdict(d) for d in dashboard.descriptors]}

    @app.get("/api/views")
    def all_views():
        return dashboard.render()

    @app.get("/api/cards")
    def cards():
        return {"cards": dashboard.cards()}

    @app.get("/api/table")
    def table():
        return {"rows": dashboard.table()}

    @app.get("/api/watchlist")
    def watchlist():
        return dashboard.watchlist()

    @app.get("/api/detail")
    def detail():
        return dashboard.detail()

    @app.get("/api/chart")
    def chart(
        timeframe: Optional[str] = Query(None, description="daily, weekly or yearly"),
        chart_type: Optional[str] = Query(None, description="line or bar"),
    ):
        if timeframe is not None and timeframe not in TIMEFRAMES:
            raise HTTPException(status_code=400, detail=f"Unknown timeframe: {timeframe}")
        if chart_type is not None and chart_type not in CHART_TYPES:
            raise HTTPException(status_code=400, detail=f"Unknown chart type: {chart_type}")
        return dashboard.chart(timeframe=timeframe, chart_type=chart_type)

    @app.get("/api/summary")
    def summary():
        return dashboard.summary()

    @app.get("/api/status")
    def status():
        return dashboard.status()

    @app.post("/api/refresh")
    def refresh():
        installed = dashboard.refresh()
        payload = dashboard.render()
        payload["installed"] = installed
        return payload

    @app.post("/api/select/{symbol}")
    def select(symbol: str):
        symbol = _require_symbol(symbol)
        if dashboard.store.record(symbol) is None:
            raise HTTPException(status_code=404, detail=f"{symbol} is not in the current snapshot")
        dashboard.select(symbol)
        return {"selected": symbol, "detail": dashboard.detail(), "chart": dashboard.chart()}

    @app.post("/api/watchlist/{symbol}")
    def toggle_watchlist(symbol: str):
        symbol = _require_symbol(symbol)
        member = dashboard.toggle_favorite(symbol)
        return {"symbol": symbol, "favorite": member, "watchlist": dashboard.watchlist()}

    @app.delete("/api/watchlist/{symbol}")
    def remove_watchlist(symbol: str):
        symbol = _require_symbol(symbol)
        if not dashboard.remove_from_watchlist(symbol):
            raise HTTPException(status_code=404, detail=f"{symbol} is not in the watchlist")
        return {"symbol": symbol, "favorite": False, "watchlist": dashboard.watchlist()}

    @app.put("/api/search")
    def search(q: str = Query("", max_length=64)):
        dashboard.search(q)
        return {"query": q, "cards": dashboard.cards(), "rows": dashboard.table()}

    @app.put("/api/sort")
    def sort(by: str = Query("", description="symbol, price, change, volume or empty")):
        try:
            dashboard.sort(by)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"sort": dashboard.store.sort, "cards": dashboard.cards(), "rows": dashboard.table()}

    @app.put("/api/timeframe")
    def timeframe(value: str = Query(...)):
        try:
            dashboard.set_timeframe(value)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"timeframe": value, "chart": dashboard.chart()}

    @app.put("/api/chart_type")
    def chart_type(value: str = Query(...)):
        try:
            dashboard.set_chart_type(value)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"chart_type": value}

    @app.put("/api/view_mode")
    def view_mode(value: str = Query(...)):
        try:
            dashboard.set_view_mode(value)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"view_mode": value}

    @app.post("/api/theme/toggle")
    def toggle_theme():
        theme = dashboard.toggle_theme()
        return {"theme": theme, "chart": dashboard.chart()}

    @app.get("/api/notifications")
    def notifications():
        items = dashboard.drain_notifications()
        return {
            "notifications": [
                {"message": n.message, "level": n.level, "ts": n.created_at.isoformat()}
                for n in items
            ]
        }

    @app.get("/api/stream/views")
    def stream_views():
        return StreamingResponse(view_events(dashboard, stop_event), media_type="text/event-stream")

    return app


def _build_default_app() -> FastAPI:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logger.info("Quote provider: %s, refresh every %ss", settings.quote_provider, settings.refresh_interval)
    return create_app(settings=settings)


app = _build_default_app()
