"""Exchange client layer -- public market data via ccxt."""

from cryptowatcher.exchange.ccxt_client import CcxtMarketDataClient
from cryptowatcher.exchange.client import MarketDataClient

__all__ = ["CcxtMarketDataClient", "MarketDataClient"]
