"""Concurrent per-asset fetching with failure isolation.

Each tracked asset is fetched in its own coroutine and all of them run
concurrently via asyncio.gather, so N assets cost one round-trip of
latency rather than N. A failure (timeout, exchange error, undecodable
payload) becomes a FetchError value for that asset only; siblings are
neither cancelled nor delayed.

No retry happens inside a cycle. The next scheduled tick is the retry.
"""

import asyncio
import time
from collections.abc import Awaitable, Sequence
from typing import TypeVar

import ccxt.async_support as ccxt_async

from cryptowatcher.exceptions import FetchError
from cryptowatcher.exchange.client import MarketDataClient
from cryptowatcher.logging import get_logger
from cryptowatcher.market_data.decode import parse_klines, parse_ticker
from cryptowatcher.models import FetchOutcome, FetchRequest, Sample

logger = get_logger(__name__)

T = TypeVar("T")

FetchResults = dict[str, FetchOutcome | FetchError]


class Fetcher:
    """Fans out one fetch per asset and joins all outcomes.

    Args:
        client: Market-data client used for ticker and kline requests.
        timeout: Deadline in seconds applied to every individual request.
        history_limit: Number of klines requested for the initial history.
        timeframe: Kline interval, e.g. "15m".
    """

    def __init__(
        self,
        client: MarketDataClient,
        timeout: float = 30.0,
        history_limit: int = 60,
        timeframe: str = "15m",
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._history_limit = history_limit
        self._timeframe = timeframe

    async def fetch_all(self, requests: Sequence[FetchRequest]) -> FetchResults:
        """Fetch every requested asset concurrently.

        Returns only after every per-asset fetch has resolved, one way or
        the other. Never raises for a per-asset failure.

        Returns:
            Mapping of symbol to FetchOutcome on success or FetchError on failure.
        """
        start = time.monotonic()
        results = await asyncio.gather(
            *(self._fetch_one(request) for request in requests),
            return_exceptions=True,
        )

        outcomes: FetchResults = {}
        for request, result in zip(requests, results):
            if isinstance(result, FetchOutcome):
                outcomes[request.symbol] = result
            elif isinstance(result, FetchError):
                outcomes[request.symbol] = result
            else:
                outcomes[request.symbol] = FetchError(request.symbol, repr(result))

        failed = [symbol for symbol, value in outcomes.items() if isinstance(value, FetchError)]
        logger.info(
            "fetch_all_complete",
            assets=len(requests),
            failed=len(failed),
            duration_seconds=round(time.monotonic() - start, 3),
        )
        return outcomes

    async def _with_deadline(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self._timeout)

    def _describe(self, exc: BaseException) -> str:
        if isinstance(exc, TimeoutError):
            return f"timed out after {self._timeout:g}s"
        if isinstance(exc, ccxt_async.BaseError):
            return f"{type(exc).__name__}: {exc}"
        return f"invalid response: {exc!r}"

    async def _fetch_history(self, symbol: str) -> tuple[Sample, ...]:
        raw_klines = await self._with_deadline(
            self._client.fetch_ohlcv(symbol, self._timeframe, self._history_limit)
        )
        return parse_klines(raw_klines, self._history_limit)

    async def _fetch_one(self, request: FetchRequest) -> FetchOutcome:
        """Fetch one asset: ticker always, klines only when requested.

        The two calls are independent. A kline failure still returns the
        ticker, with history_error set so the history is requested again
        next cycle.

        Raises:
            FetchError: If the ticker fails (timeout, exchange/transport
                error or bad payload).
        """
        symbol = request.symbol
        history: tuple[Sample, ...] | None = None
        history_error: str | None = None
        try:
            if request.include_history:
                raw_ticker, klines = await asyncio.gather(
                    self._with_deadline(self._client.fetch_ticker(symbol)),
                    self._fetch_history(symbol),
                    return_exceptions=True,
                )
                if isinstance(raw_ticker, BaseException):
                    raise raw_ticker
                if isinstance(klines, Exception):
                    history_error = self._describe(klines)
                    logger.warning("history_fetch_failed", symbol=symbol, cause=history_error)
                elif isinstance(klines, BaseException):
                    raise klines
                else:
                    history = klines
            else:
                raw_ticker = await self._with_deadline(self._client.fetch_ticker(symbol))
            stats = parse_ticker(raw_ticker)
        except Exception as exc:
            error = FetchError(symbol, self._describe(exc))
            logger.warning(
                "fetch_failed",
                symbol=symbol,
                cause=error.cause,
                exc_info=not isinstance(exc, (TimeoutError, ccxt_async.BaseError)),
            )
            raise error from exc

        logger.debug(
            "fetch_succeeded",
            symbol=symbol,
            price=str(stats.last_price),
            history=len(history) if history is not None else None,
        )
        return FetchOutcome(symbol=symbol, stats=stats, history=history, history_error=history_error)
