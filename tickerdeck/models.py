from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class SymbolDescriptor:
    symbol: str
    name: str
    sector: str


@dataclass(frozen=True)
class QuoteRecord:
    symbol: str
    name: str
    sector: str
    price: float
    change: float
    change_percent: float
    open: float
    high: float
    low: float
    previous_close: float
    volume: str
    market_cap: str

    @property
    def is_positive(self) -> bool:
        return self.change >= 0

    @property
    def volume_value(self) -> int:
        try:
            return int(self.volume.replace(",", ""))
        except ValueError:
            return 0


@dataclass(frozen=True)
class HistoricalPoint:
    date: date
    price: float
    volume: int


@dataclass(frozen=True)
class IndexQuote:
    name: str
    value: float
    change_percent: float


@dataclass(frozen=True)
class MarketSummary:
    sp500: IndexQuote
    nasdaq: IndexQuote
    dow_jones: IndexQuote
    total_volume: int


@dataclass(frozen=True)
class Notification:
    message: str
    level: str = "info"
    created_at: datetime = field(default_factory=datetime.now)


def format_volume(value: Optional[float]) -> str:
    if value is None:
        return "--"
    return f"{int(value):,}"
