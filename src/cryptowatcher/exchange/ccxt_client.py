"""Market-data client implementation via ccxt async.

Wraps a ccxt.async_support exchange class (Binance by default) with the
per-request timeout configured and async cleanup. Only public endpoints
are used, so no API keys are needed.
"""

import ccxt.async_support as ccxt_async

from cryptowatcher.config import ExchangeSettings
from cryptowatcher.exchange.client import MarketDataClient
from cryptowatcher.logging import get_logger

logger = get_logger(__name__)


class CcxtMarketDataClient(MarketDataClient):
    """Concrete public market-data client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings

        exchange_class = getattr(ccxt_async, settings.exchange_id, None)
        if exchange_class is None:
            raise ValueError(f"Unknown ccxt exchange id {settings.exchange_id!r}")

        config: dict = {
            "enableRateLimit": True,
            "timeout": int(settings.request_timeout * 1000),  # ccxt expects ms
            "options": {
                "defaultType": "spot",
            },
        }
        self._exchange = exchange_class(config)

    @property
    def exchange(self) -> ccxt_async.Exchange:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        logger.info("closing_exchange_connection", exchange=self._settings.exchange_id)
        await self._exchange.close()

    async def fetch_ticker(self, symbol: str) -> dict:
        """Fetch current 24h ticker data for a single symbol."""
        return await self._exchange.fetch_ticker(symbol)

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "15m",
        limit: int = 60,
    ) -> list[list]:
        """Fetch the most recent OHLCV candles via ccxt."""
        logger.debug("fetching_ohlcv", symbol=symbol, timeframe=timeframe, limit=limit)
        return await self._exchange.fetch_ohlcv(symbol, timeframe, limit=limit)
