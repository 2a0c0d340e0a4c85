from __future__ import annotations

import re
from typing import Dict, List, Optional

from tickerdeck.models import SymbolDescriptor

TRACKED_SYMBOLS: List[SymbolDescriptor] = [
    SymbolDescriptor("AAPL", "Apple Inc.", "Technology"),
    SymbolDescriptor("GOOGL", "Alphabet Inc.", "Technology"),
    SymbolDescriptor("MSFT", "Microsoft Corporation", "Technology"),
    SymbolDescriptor("TSLA", "Tesla Inc.", "Automotive"),
    SymbolDescriptor("AMZN", "Amazon.com Inc.", "E-commerce"),
    SymbolDescriptor("NVDA", "NVIDIA Corporation", "Technology"),
    SymbolDescriptor("META", "Meta Platforms Inc.", "Technology"),
]

DEFAULT_BASE_PRICE = 100.0

_BASE_PRICES: Dict[str, float] = {
    "AAPL": 185.50,
    "GOOGL": 141.80,
    "MSFT": 378.90,
    "TSLA": 248.50,
    "AMZN": 178.25,
    "NVDA": 495.80,
    "META": 505.75,
}

_MARKET_CAPS: Dict[str, str] = {
    "AAPL": "2.89T",
    "GOOGL": "1.78T",
    "MSFT": "2.81T",
    "TSLA": "789B",
    "AMZN": "1.85T",
    "NVDA": "1.22T",
    "META": "1.29T",
}

_TICKER_RE = re.compile(r"[^A-Z0-9=\-.\^/]")


def base_price(symbol: str) -> float:
    return _BASE_PRICES.get(symbol, DEFAULT_BASE_PRICE)


def market_cap(symbol: str) -> str:
    return _MARKET_CAPS.get(symbol, "--")


def normalize_symbol(raw: Optional[str]) -> str:
    if raw is None:
        return ""
    return _TICKER_RE.sub("", str(raw).strip().upper())
