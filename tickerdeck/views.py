"""View projections.

Each function maps already-computed dashboard state to a JSON-able rendering
instruction. None of them read or mutate shared state; callers pass in what
they read from the store.
"""

from __future__ import annotations

from datetime import date, datetime
import random
from typing import Dict, List, Optional, Sequence

from tickerdeck.models import MarketSummary, QuoteRecord
from tickerdeck.store import TIMEFRAMES
from tickerdeck.synthetic import generate_historical_series

PLACEHOLDER = "--"

PALETTES: Dict[str, Dict[str, str]] = {
    "dark": {"positive": "#10b981", "negative": "#ef4444", "neutral": "#3b82f6"},
    "light": {"positive": "#059669", "negative": "#dc2626", "neutral": "#2563eb"},
}


def _direction(value: float) -> str:
    return "positive" if value >= 0 else "negative"


def _signed(value: float, suffix: str = "") -> str:
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.2f}{suffix}"


def _money(value: float) -> str:
    return f"${value:.2f}"


def _quote_fields(rec: QuoteRecord) -> Dict[str, object]:
    return {
        "symbol": rec.symbol,
        "name": rec.name,
        "price": _money(rec.price),
        "change": _signed(rec.change),
        "change_percent": _signed(rec.change_percent, "%"),
        "direction": "positive" if rec.is_positive else "negative",
        "volume": rec.volume,
    }


def project_cards(
    records: Sequence[QuoteRecord],
    watchlist: Sequence[str],
    selected: Optional[str],
) -> List[Dict[str, object]]:
    favorites = set(watchlist)
    cards = []
    for rec in records:
        card = _quote_fields(rec)
        card["sector"] = rec.sector
        card["favorite"] = rec.symbol in favorites
        card["selected"] = rec.symbol == selected
        cards.append(card)
    return cards


def project_table(records: Sequence[QuoteRecord], watchlist: Sequence[str]) -> List[Dict[str, object]]:
    favorites = set(watchlist)
    rows = []
    for rec in records:
        row = _quote_fields(rec)
        row["favorite"] = rec.symbol in favorites
        rows.append(row)
    return rows


def project_watchlist(snapshot: Sequence[QuoteRecord], watchlist: Sequence[str]) -> Dict[str, object]:
    if not watchlist:
        return {
            "empty": True,
            "message": "No stocks in watchlist",
            "hint": "Click the star icon on any stock to add it here",
            "items": [],
        }
    favorites = set(watchlist)
    items = [
        {
            "symbol": rec.symbol,
            "price": _money(rec.price),
            "change_percent": _signed(rec.change_percent, "%"),
            "direction": "positive" if rec.is_positive else "negative",
        }
        for rec in snapshot
        if rec.symbol in favorites
    ]
    return {"empty": False, "items": items}


def project_detail(rec: Optional[QuoteRecord]) -> Dict[str, object]:
    if rec is None:
        return {
            "symbol": PLACEHOLDER,
            "name": PLACEHOLDER,
            "price": PLACEHOLDER,
            "open": PLACEHOLDER,
            "high": PLACEHOLDER,
            "low": PLACEHOLDER,
            "volume": PLACEHOLDER,
            "market_cap": PLACEHOLDER,
            "direction": None,
        }
    return {
        "symbol": rec.symbol,
        "name": rec.name,
        "price": _money(rec.price),
        "open": _money(rec.open),
        "high": _money(rec.high),
        "low": _money(rec.low),
        "volume": rec.volume,
        "market_cap": rec.market_cap,
        "direction": "positive" if rec.is_positive else "negative",
    }


def _chart_label(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}"


def project_chart(
    symbol: Optional[str],
    timeframe: str = "daily",
    theme: str = "dark",
    chart_type: str = "line",
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> Dict[str, object]:
    """Build chart data for ``symbol`` from a freshly generated series.

    Nothing is cached: every call draws a new series, so the same inputs only
    give the same output when a seeded ``rng`` is passed.
    """
    palette = PALETTES.get(theme, PALETTES["dark"])
    if not symbol:
        return {
            "symbol": None,
            "timeframe": timeframe,
            "chart_type": chart_type,
            "labels": [],
            "dates": [],
            "prices": [],
            "volumes": [],
            "trend": None,
            "color": palette["neutral"],
            "fill_color": f"{palette['neutral']}20",
        }
    days = TIMEFRAMES.get(timeframe, TIMEFRAMES["daily"])
    series = generate_historical_series(symbol, days, rng=rng, today=today)
    prices = [round(point.price, 2) for point in series]
    trend = "positive" if series[-1].price >= series[0].price else "negative"
    color = palette[trend]
    return {
        "symbol": symbol,
        "timeframe": timeframe,
        "chart_type": chart_type,
        "labels": [_chart_label(point.date) for point in series],
        "dates": [point.date.isoformat() for point in series],
        "prices": prices,
        "volumes": [point.volume for point in series],
        "trend": trend,
        "color": color,
        "fill_color": f"{color}20",
    }


def project_market_summary(summary: Optional[MarketSummary]) -> Dict[str, object]:
    if summary is None:
        blank = {"value": PLACEHOLDER, "change_percent": PLACEHOLDER, "direction": None}
        return {
            "sp500": dict(blank, name="S&P 500"),
            "nasdaq": dict(blank, name="NASDAQ"),
            "dow_jones": dict(blank, name="Dow Jones"),
            "total_volume": PLACEHOLDER,
        }
    out: Dict[str, object] = {}
    for key, index in (("sp500", summary.sp500), ("nasdaq", summary.nasdaq), ("dow_jones", summary.dow_jones)):
        out[key] = {
            "name": index.name,
            "value": f"{index.value:.2f}",
            "change_percent": _signed(index.change_percent, "%"),
            "direction": _direction(index.change_percent),
        }
    out["total_volume"] = f"{summary.total_volume:,}"
    return out


def project_status(
    last_refresh: Optional[datetime],
    source: Optional[str],
    refreshing: bool = False,
) -> Dict[str, object]:
    label = f"Updated {last_refresh.strftime('%H:%M:%S')}" if last_refresh else "Waiting for data"
    return {
        "label": label,
        "last_refresh": last_refresh.isoformat() if last_refresh else None,
        "source": source,
        "refreshing": refreshing,
    }
