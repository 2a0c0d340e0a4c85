"""Synthetic market data.

Used whenever the live quote provider is unusable, and always for chart
history. Every function draws from a ``random.Random`` (the module-level one
unless a seeded instance is passed) and has no other side effects.
"""

from __future__ import annotations

from datetime import date, timedelta
import math
import random
from typing import Iterable, List, Optional

from tickerdeck.models import (
    HistoricalPoint,
    IndexQuote,
    MarketSummary,
    QuoteRecord,
    SymbolDescriptor,
    format_volume,
)
from tickerdeck.symbols import base_price, market_cap

_FLOOR_RATIO = 0.7
_START_RATIO = 0.9
_DRIFT_CENTER = 0.48
_STEP_SCALE = 0.03

_DEFAULT_RNG = random.Random()


def _rng(rng: Optional[random.Random]) -> random.Random:
    return rng if rng is not None else _DEFAULT_RNG


def generate_quote(descriptor: SymbolDescriptor, rng: Optional[random.Random] = None) -> QuoteRecord:
    r = _rng(rng)
    base = base_price(descriptor.symbol)
    change = (r.random() - 0.5) * 10
    price = base + change
    return QuoteRecord(
        symbol=descriptor.symbol,
        name=descriptor.name,
        sector=descriptor.sector,
        price=round(price, 2),
        change=round(change, 2),
        change_percent=round(change / base * 100, 2),
        open=round(price - r.random() * 2, 2),
        high=round(price + r.random() * 3, 2),
        low=round(price - r.random() * 3, 2),
        previous_close=round(base, 2),
        volume=format_volume(math.floor(r.random() * 10_000_000 + 1_000_000)),
        market_cap=market_cap(descriptor.symbol),
    )


def generate_quotes(
    descriptors: Iterable[SymbolDescriptor], rng: Optional[random.Random] = None
) -> List[QuoteRecord]:
    return [generate_quote(descriptor, rng) for descriptor in descriptors]


def generate_historical_series(
    symbol: str,
    days: int = 30,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> List[HistoricalPoint]:
    """Random-walk ``days + 1`` daily points ending at ``today``.

    The walk starts below the symbol's baseline, drifts slightly upward and is
    clamped so no price falls under 70% of the baseline.
    """
    r = _rng(rng)
    days = max(0, int(days))
    end = today or date.today()
    base = base_price(symbol)
    floor = base * _FLOOR_RATIO
    current = base * _START_RATIO
    points: List[HistoricalPoint] = []
    for offset in range(days, -1, -1):
        step = (r.random() - _DRIFT_CENTER) * (base * _STEP_SCALE)
        current = max(current + step, floor)
        points.append(
            HistoricalPoint(
                date=end - timedelta(days=offset),
                price=current,
                volume=math.floor(r.random() * 50_000_000 + 10_000_000),
            )
        )
    return points


def generate_market_summary(rng: Optional[random.Random] = None) -> MarketSummary:
    r = _rng(rng)

    def _index(name: str, center: float, spread: float) -> IndexQuote:
        value = center + (r.random() - 0.5) * spread
        return IndexQuote(name=name, value=round(value, 2), change_percent=round(r.random() - 0.5, 2))

    return MarketSummary(
        sp500=_index("S&P 500", 4780, 20),
        nasdaq=_index("NASDAQ", 15050, 50),
        dow_jones=_index("Dow Jones", 37500, 100),
        total_volume=math.floor(r.random() * 5_000_000_000 + 10_000_000_000),
    )
