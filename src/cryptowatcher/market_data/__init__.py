"""Market data layer -- concurrent per-asset fetching and response decoding."""

from cryptowatcher.market_data.decode import parse_klines, parse_ticker
from cryptowatcher.market_data.fetcher import Fetcher

__all__ = ["Fetcher", "parse_klines", "parse_ticker"]
