"""Abstract market-data client interface.

The fetcher depends only on this interface, keeping exchange-specific
details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod


class MarketDataClient(ABC):
    """Abstract base class for public market-data API clients."""

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_ticker(self, symbol: str) -> dict:
        """Fetch current 24h ticker data for a single symbol."""
        ...

    @abstractmethod
    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "15m",
        limit: int = 60,
    ) -> list[list]:
        """Fetch the most recent OHLCV candles.

        Returns list of [timestamp_ms, open, high, low, close, volume],
        oldest first.
        """
        ...
