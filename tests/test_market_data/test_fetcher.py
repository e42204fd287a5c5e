"""Tests for Fetcher -- concurrent fan-out with per-asset failure isolation.

All tests use a mocked market-data client to avoid real API calls.
"""

import asyncio
import time
from decimal import Decimal
from unittest.mock import AsyncMock

import ccxt.async_support as ccxt_async
import pytest

from cryptowatcher.exceptions import FetchError
from cryptowatcher.exchange.client import MarketDataClient
from cryptowatcher.market_data.fetcher import Fetcher
from cryptowatcher.models import FetchOutcome, FetchRequest
from factories import BASE_TS, KLINE_MS

TICKERS = {
    "BTC/USDT": {"last": 50000.0, "high": 51000, "low": 49000, "baseVolume": 100, "percentage": 2.0, "timestamp": BASE_TS},
    "ETH/USDT": {"last": 3000.0, "high": 3100, "low": 2900, "baseVolume": 200, "percentage": -1.0, "timestamp": BASE_TS},
    "SOL/USDT": {"last": 100.0, "high": 110, "low": 90, "baseVolume": 300, "percentage": 0.5, "timestamp": BASE_TS},
}


def _klines(count: int = 60) -> list[list]:
    return [[BASE_TS - (count - i) * KLINE_MS, 0, 0, 0, 100.0 + i, 0] for i in range(count)]


@pytest.fixture
def mock_client() -> AsyncMock:
    """Mock MarketDataClient returning canned tickers and klines."""
    client = AsyncMock(spec=MarketDataClient)

    async def fetch_ticker(symbol: str) -> dict:
        return TICKERS[symbol]

    client.fetch_ticker.side_effect = fetch_ticker
    client.fetch_ohlcv.return_value = _klines()
    return client


@pytest.fixture
def fetcher(mock_client: AsyncMock) -> Fetcher:
    return Fetcher(mock_client, timeout=0.5, history_limit=60, timeframe="15m")


class TestFetchAll:
    @pytest.mark.asyncio
    async def test_all_assets_succeed(self, fetcher: Fetcher) -> None:
        requests = [FetchRequest("BTC/USDT"), FetchRequest("ETH/USDT")]
        results = await fetcher.fetch_all(requests)
        assert set(results) == {"BTC/USDT", "ETH/USDT"}
        btc = results["BTC/USDT"]
        assert isinstance(btc, FetchOutcome)
        assert btc.stats.last_price == Decimal("50000.0")
        assert btc.history is None

    @pytest.mark.asyncio
    async def test_history_only_when_requested(
        self, fetcher: Fetcher, mock_client: AsyncMock
    ) -> None:
        results = await fetcher.fetch_all(
            [FetchRequest("BTC/USDT", include_history=True), FetchRequest("ETH/USDT")]
        )
        btc = results["BTC/USDT"]
        eth = results["ETH/USDT"]
        assert isinstance(btc, FetchOutcome) and isinstance(eth, FetchOutcome)
        assert btc.history is not None and len(btc.history) == 60
        assert eth.history is None
        mock_client.fetch_ohlcv.assert_awaited_once_with("BTC/USDT", "15m", 60)

    @pytest.mark.asyncio
    async def test_one_failure_isolated(self, fetcher: Fetcher, mock_client: AsyncMock) -> None:
        async def fetch_ticker(symbol: str) -> dict:
            if symbol == "ETH/USDT":
                raise ccxt_async.NetworkError("connection reset")
            return TICKERS[symbol]

        mock_client.fetch_ticker.side_effect = fetch_ticker
        results = await fetcher.fetch_all(
            [FetchRequest("BTC/USDT"), FetchRequest("ETH/USDT"), FetchRequest("SOL/USDT")]
        )
        assert isinstance(results["BTC/USDT"], FetchOutcome)
        assert isinstance(results["SOL/USDT"], FetchOutcome)
        error = results["ETH/USDT"]
        assert isinstance(error, FetchError)
        assert error.symbol == "ETH/USDT"
        assert "NetworkError" in error.cause

    @pytest.mark.asyncio
    async def test_timeout_becomes_fetch_error(
        self, mock_client: AsyncMock
    ) -> None:
        async def fetch_ticker(symbol: str) -> dict:
            if symbol == "ETH/USDT":
                await asyncio.sleep(10)
            return TICKERS[symbol]

        mock_client.fetch_ticker.side_effect = fetch_ticker
        fetcher = Fetcher(mock_client, timeout=0.05)
        results = await fetcher.fetch_all([FetchRequest("BTC/USDT"), FetchRequest("ETH/USDT")])
        assert isinstance(results["BTC/USDT"], FetchOutcome)
        error = results["ETH/USDT"]
        assert isinstance(error, FetchError)
        assert "timed out" in error.cause

    @pytest.mark.asyncio
    async def test_kline_failure_keeps_ticker(
        self, fetcher: Fetcher, mock_client: AsyncMock
    ) -> None:
        mock_client.fetch_ohlcv.side_effect = ccxt_async.ExchangeError("bad symbol")
        results = await fetcher.fetch_all([FetchRequest("BTC/USDT", include_history=True)])
        outcome = results["BTC/USDT"]
        assert isinstance(outcome, FetchOutcome)
        assert outcome.stats.last_price == Decimal("50000.0")
        assert outcome.history is None
        assert outcome.history_error == "ExchangeError: bad symbol"

    @pytest.mark.asyncio
    async def test_ticker_failure_fails_the_asset_even_with_klines(
        self, fetcher: Fetcher, mock_client: AsyncMock
    ) -> None:
        mock_client.fetch_ticker.side_effect = ccxt_async.NetworkError("reset")
        results = await fetcher.fetch_all([FetchRequest("BTC/USDT", include_history=True)])
        error = results["BTC/USDT"]
        assert isinstance(error, FetchError)
        assert error.cause == "NetworkError: reset"

    @pytest.mark.asyncio
    async def test_bad_payload_becomes_fetch_error(
        self, fetcher: Fetcher, mock_client: AsyncMock
    ) -> None:
        mock_client.fetch_ticker.side_effect = None
        mock_client.fetch_ticker.return_value = {"symbol": "BTC/USDT"}
        results = await fetcher.fetch_all([FetchRequest("BTC/USDT")])
        error = results["BTC/USDT"]
        assert isinstance(error, FetchError)
        assert "invalid response" in error.cause

    @pytest.mark.asyncio
    async def test_requests_run_concurrently(self, mock_client: AsyncMock) -> None:
        async def fetch_ticker(symbol: str) -> dict:
            await asyncio.sleep(0.2)
            return TICKERS[symbol]

        mock_client.fetch_ticker.side_effect = fetch_ticker
        fetcher = Fetcher(mock_client, timeout=5.0)
        start = time.monotonic()
        results = await fetcher.fetch_all([FetchRequest(s) for s in TICKERS])
        elapsed = time.monotonic() - start
        assert all(isinstance(r, FetchOutcome) for r in results.values())
        # Sequential would take ~0.6s
        assert elapsed < 0.5

    @pytest.mark.asyncio
    async def test_empty_request_list(self, fetcher: Fetcher) -> None:
        assert await fetcher.fetch_all([]) == {}
