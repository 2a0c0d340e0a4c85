"""Live quote sources.

Every source implements ``fetch_quotes(descriptors)`` and returns either the
usable batch (possibly a subset of the requested symbols) or ``None`` when the
provider is unusable and the caller should fall back to synthetic data.
Provider and network failures never escape ``fetch_quotes``.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import time
from typing import Dict, List, Optional, Sequence

import pandas as pd
import requests
import yfinance as yf

from tickerdeck.config import Settings
from tickerdeck.log import get_logger
from tickerdeck.models import QuoteRecord, SymbolDescriptor, format_volume
from tickerdeck.symbols import market_cap

logger = get_logger("quotes")

_OHLC_FIELDS = {"Open", "High", "Low", "Close", "Adj Close", "Volume"}
_NOTICE_KEYS = ("Note", "Information")
_QUOTE_SECTION = "Global Quote"


class QuoteSource:
    name = "base"

    def fetch_quotes(self, descriptors: Sequence[SymbolDescriptor]) -> Optional[List[QuoteRecord]]:
        raise NotImplementedError


class SyntheticQuoteSource(QuoteSource):
    """Offline mode: always asks the caller to fall back."""

    name = "synthetic"

    def fetch_quotes(self, descriptors: Sequence[SymbolDescriptor]) -> Optional[List[QuoteRecord]]:
        return None


def _requests_json_with_retry(
    session: requests.Session,
    url: str,
    *,
    params: Dict[str, object],
    retries: int = 2,
    timeout: int = 8,
):
    last_error: Optional[Exception] = None
    for attempt in range(max(1, retries)):
        try:
            resp = session.get(url, params=params, timeout=timeout)
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            last_error = exc
        if attempt < retries - 1:
            time.sleep(0.25 * (attempt + 1))
    if last_error:
        raise last_error
    return {}


def _is_notice(payload: object) -> bool:
    if not isinstance(payload, dict):
        return True
    return any(payload.get(key) for key in _NOTICE_KEYS)


def parse_global_quote(descriptor: SymbolDescriptor, payload: object) -> Optional[QuoteRecord]:
    if not isinstance(payload, dict):
        return None
    quote = payload.get(_QUOTE_SECTION)
    if not isinstance(quote, dict) or not quote.get("05. price"):
        return None
    try:
        return QuoteRecord(
            symbol=descriptor.symbol,
            name=descriptor.name,
            sector=descriptor.sector,
            price=round(float(quote["05. price"]), 2),
            change=round(float(quote["09. change"]), 2),
            change_percent=round(float(str(quote["10. change percent"]).replace("%", "")), 2),
            open=round(float(quote["02. open"]), 2),
            high=round(float(quote["03. high"]), 2),
            low=round(float(quote["04. low"]), 2),
            previous_close=round(float(quote["08. previous close"]), 2),
            volume=format_volume(int(float(quote["06. volume"]))),
            market_cap=market_cap(descriptor.symbol),
        )
    except (KeyError, TypeError, ValueError):
        return None


class AlphaVantageQuoteSource(QuoteSource):
    name = "alphavantage"

    def __init__(
        self,
        api_key: str = "demo",
        url: str = "https://www.alphavantage.co/query",
        timeout: int = 8,
        retries: int = 2,
        session: Optional[requests.Session] = None,
        max_workers: int = 8,
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._timeout = timeout
        self._retries = retries
        self._session = session or requests.Session()
        self._max_workers = max(1, max_workers)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AlphaVantageQuoteSource":
        return cls(
            api_key=settings.alphavantage_api_key,
            url=settings.alphavantage_url,
            timeout=settings.http_timeout,
            retries=settings.http_retries,
        )

    def _get_quote_payload(self, symbol: str):
        return _requests_json_with_retry(
            self._session,
            self._url,
            params={"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self._api_key},
            retries=self._retries,
            timeout=self._timeout,
        )

    def fetch_quotes(self, descriptors: Sequence[SymbolDescriptor]) -> Optional[List[QuoteRecord]]:
        if not descriptors:
            return None
        first = descriptors[0]
        try:
            probe = self._get_quote_payload(first.symbol)
        except Exception as exc:
            logger.info("Quote provider unreachable, using synthetic data: %s", exc)
            return None
        if _is_notice(probe) or _QUOTE_SECTION not in probe:
            logger.info("Quote provider returned no data (rate limit or invalid key), using synthetic data")
            return None

        def _fetch(descriptor: SymbolDescriptor) -> Optional[QuoteRecord]:
            try:
                payload = probe if descriptor is first else self._get_quote_payload(descriptor.symbol)
            except Exception as exc:
                logger.warning("Error fetching %s: %s", descriptor.symbol, exc)
                return None
            record = parse_global_quote(descriptor, payload)
            if record is None:
                logger.warning("Dropping %s: malformed quote payload", descriptor.symbol)
            return record

        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(descriptors))) as pool:
            fetched = list(pool.map(_fetch, descriptors))
        records: List[QuoteRecord] = [rec for rec in fetched if rec is not None]
        if not records:
            logger.info("Quote provider returned an empty batch, using synthetic data")
            return None
        return records


def _yf_download_with_retry(
    tickers,
    *,
    period: str,
    interval: str,
    retries: int = 2,
    timeout: int = 8,
) -> pd.DataFrame:
    last_error: Optional[Exception] = None
    for attempt in range(max(1, retries)):
        try:
            df = yf.download(
                tickers,
                period=period,
                interval=interval,
                progress=False,
                auto_adjust=False,
                timeout=timeout,
                threads=False,
            )
            if isinstance(df, pd.DataFrame) and not df.empty:
                return df
        except Exception as exc:
            last_error = exc
        if attempt < retries - 1:
            time.sleep(0.35 * (attempt + 1))
    if last_error:
        raise last_error
    return pd.DataFrame()


def _extract_symbol_df(df: pd.DataFrame, symbol: str) -> pd.DataFrame:
    if not isinstance(df.columns, pd.MultiIndex):
        return df
    level0 = df.columns.get_level_values(0)
    level1 = df.columns.get_level_values(1)
    if set(level0).issubset(_OHLC_FIELDS):
        if symbol in level1:
            return df.xs(symbol, level=1, axis=1)
        return pd.DataFrame()
    if set(level1).issubset(_OHLC_FIELDS):
        if symbol in level0:
            return df[symbol]
        return pd.DataFrame()
    return pd.DataFrame()


def _frame_to_record(descriptor: SymbolDescriptor, sym_df: pd.DataFrame) -> Optional[QuoteRecord]:
    if sym_df.empty or "Close" not in sym_df.columns:
        return None
    rows = sym_df.dropna(subset=["Close"])
    if rows.empty:
        return None
    last = rows.iloc[-1]
    price = float(last["Close"])
    prev_close = float(rows["Close"].iloc[-2]) if len(rows) > 1 else price
    change = price - prev_close
    pct = (change / prev_close * 100) if prev_close else 0.0

    def _field(column: str) -> float:
        value = last.get(column)
        return round(float(value), 2) if value is not None and pd.notna(value) else round(price, 2)

    volume = last.get("Volume")
    return QuoteRecord(
        symbol=descriptor.symbol,
        name=descriptor.name,
        sector=descriptor.sector,
        price=round(price, 2),
        change=round(change, 2),
        change_percent=round(pct, 2),
        open=_field("Open"),
        high=_field("High"),
        low=_field("Low"),
        previous_close=round(prev_close, 2),
        volume=format_volume(volume if volume is not None and pd.notna(volume) else 0),
        market_cap=market_cap(descriptor.symbol),
    )


class YahooQuoteSource(QuoteSource):
    name = "yahoo"

    def __init__(self, timeout: int = 8, retries: int = 2) -> None:
        self._timeout = timeout
        self._retries = retries

    @classmethod
    def from_settings(cls, settings: Settings) -> "YahooQuoteSource":
        return cls(timeout=settings.http_timeout, retries=settings.http_retries)

    def fetch_quotes(self, descriptors: Sequence[SymbolDescriptor]) -> Optional[List[QuoteRecord]]:
        tickers = [d.symbol for d in descriptors]
        if not tickers:
            return None
        try:
            df = _yf_download_with_retry(
                tickers,
                period="5d",
                interval="1d",
                retries=self._retries,
                timeout=self._timeout,
            )
        except Exception as exc:
            logger.info("Yahoo download failed, using synthetic data: %s", exc)
            return None
        if df.empty:
            logger.info("Yahoo returned no rows, using synthetic data")
            return None

        records: List[QuoteRecord] = []
        for descriptor in descriptors:
            try:
                record = _frame_to_record(descriptor, _extract_symbol_df(df, descriptor.symbol))
            except Exception as exc:
                logger.warning("Error reading %s from Yahoo frame: %s", descriptor.symbol, exc)
                continue
            if record is None:
                logger.warning("Dropping %s: no rows in Yahoo frame", descriptor.symbol)
                continue
            records.append(record)
        if not records:
            return None
        return records


def build_quote_source(settings: Settings) -> QuoteSource:
    if settings.quote_provider == "yahoo":
        return YahooQuoteSource.from_settings(settings)
    if settings.quote_provider == "synthetic":
        return SyntheticQuoteSource()
    return AlphaVantageQuoteSource.from_settings(settings)
