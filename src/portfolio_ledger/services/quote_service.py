"""Quote provider adapter for current market prices.

The valuation service only depends on the ``QuoteProvider`` protocol; the
default implementation asks Yahoo Finance through yfinance. UAE symbols use
Yahoo's exchange suffixes (``EMAAR.AE``, ``FAB.AD``).

Note:
    HTTP responses are cached through requests-cache with a Redis backend
    when it is configured at startup (see ``portfolio_ledger.core.cache``).
"""

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Protocol

import pandas as pd
import yfinance as yf

from portfolio_ledger.core.config import settings
from portfolio_ledger.core.constants import MoneyConstants, QuoteConstants
from portfolio_ledger.core.exceptions import UpstreamUnavailableError
from portfolio_ledger.schemas.quote import SymbolMatch

logger = logging.getLogger(__name__)


class QuoteProvider(Protocol):
    """Anything that can price a symbol.

    Implementations raise ``UpstreamUnavailableError`` when they cannot.
    """

    async def get_price(self, symbol: str) -> Decimal: ...

    async def search_symbols(self, query: str) -> list[SymbolMatch]: ...


def _last_close(history: pd.DataFrame) -> float | None:
    """Most recent non-null close in a yfinance history frame."""
    if history.empty or "Close" not in history.columns:
        return None
    closes = history["Close"].dropna()
    if closes.empty:
        return None
    return float(closes.iloc[-1])


def to_price(value: object, symbol: str) -> Decimal:
    """Convert a raw quote to a positive Decimal rounded to 4 places."""
    try:
        price = Decimal(str(value)).quantize(MoneyConstants.PRICE_QUANTUM)
    except (InvalidOperation, ValueError) as e:
        raise UpstreamUnavailableError(f"Invalid quote for {symbol}: {value!r}") from e
    if not price.is_finite() or price <= 0:
        raise UpstreamUnavailableError(f"Invalid quote for {symbol}: {value!r}")
    return price


def fetch_last_price(symbol: str) -> Decimal:
    """
    Fetch the latest traded price of ``symbol`` from Yahoo Finance.

    Uses ``fast_info.last_price`` and falls back to the last daily close of
    a short history window.

    Raises:
        UpstreamUnavailableError: Unknown symbol, no data, or API failure
    """
    try:
        ticker = yf.Ticker(symbol.upper())
        price = ticker.fast_info.last_price
        if price is None or pd.isna(price):
            price = _last_close(ticker.history(period=QuoteConstants.FALLBACK_HISTORY_PERIOD))
        if price is None:
            raise UpstreamUnavailableError(f"No quote available for {symbol}")
        return to_price(price, symbol)

    except Exception as e:
        if isinstance(e, UpstreamUnavailableError):
            raise
        logger.error(f"Error fetching quote for {symbol}: {e}")
        raise UpstreamUnavailableError(f"Failed to fetch quote for {symbol}") from e


def search_equities(
    query: str, max_results: int = QuoteConstants.SEARCH_MAX_RESULTS
) -> list[SymbolMatch]:
    """
    Search Yahoo Finance for equities matching ``query``.

    Funds, indices, currencies and other quote types are dropped.

    Raises:
        UpstreamUnavailableError: API failure
    """
    try:
        quotes = yf.Search(query, max_results=max_results, news_count=0).quotes
    except Exception as e:
        logger.error(f"Error searching symbols for {query!r}: {e}")
        raise UpstreamUnavailableError(f"Failed to search symbols for {query!r}") from e

    return [
        SymbolMatch(
            symbol=quote["symbol"],
            name=quote.get("shortname") or quote.get("longname") or quote["symbol"],
            exchange=quote.get("exchange"),
        )
        for quote in quotes
        if quote.get("quoteType") == "EQUITY" and quote.get("symbol")
    ]


class YFinanceQuoteProvider:
    """Quote provider backed by yfinance.

    yfinance is blocking, so each lookup runs in a worker thread and is
    bounded by ``timeout`` seconds.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = settings.QUOTE_TIMEOUT_SECONDS if timeout is None else timeout

    async def get_price(self, symbol: str) -> Decimal:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fetch_last_price, symbol),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            raise UpstreamUnavailableError(
                f"Quote for {symbol} timed out after {self.timeout}s"
            ) from e

    async def search_symbols(self, query: str) -> list[SymbolMatch]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(search_equities, query),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            raise UpstreamUnavailableError(
                f"Symbol search for {query!r} timed out after {self.timeout}s"
            ) from e
