"""Decode ccxt unified ticker and OHLCV payloads into watcher models.

CRITICAL: all prices and volumes are converted through str() into Decimal,
never used as float.
"""

import time
from decimal import Decimal
from typing import Any

from cryptowatcher.models import Sample, TickerStats

_OHLCV_TIMESTAMP = 0
_OHLCV_CLOSE = 4


def _to_decimal(value: Any, default: Decimal | None = None) -> Decimal:
    if value is None:
        if default is None:
            raise ValueError("missing required numeric field")
        return default
    return Decimal(str(value))


def parse_ticker(ticker: dict, now_ms: int | None = None) -> TickerStats:
    """Extract 24h statistics from a ccxt unified ticker.

    ``last`` is required; the other statistics fall back to zero. The
    exchange timestamp is used when present, otherwise ``now_ms``.

    Raises:
        ValueError: If the last price is missing.
        decimal.InvalidOperation: If a numeric field cannot be parsed.
    """
    last_price = _to_decimal(ticker.get("last"))
    zero = Decimal("0")
    timestamp = ticker.get("timestamp")
    if timestamp is None:
        timestamp = now_ms if now_ms is not None else int(time.time() * 1000)

    return TickerStats(
        last_price=last_price,
        high_24h=_to_decimal(ticker.get("high"), zero),
        low_24h=_to_decimal(ticker.get("low"), zero),
        volume_24h=_to_decimal(ticker.get("baseVolume"), zero),
        change_24h_pct=_to_decimal(ticker.get("percentage"), zero),
        timestamp_ms=int(timestamp),
    )


def parse_klines(rows: list[list], limit: int) -> tuple[Sample, ...]:
    """Turn OHLCV rows into (open time, close price) samples.

    Malformed rows are skipped. The result is chronological, has unique
    timestamps and keeps only the newest ``limit`` samples.
    """
    by_timestamp: dict[int, Sample] = {}
    for row in rows:
        try:
            ts = int(row[_OHLCV_TIMESTAMP])
            close = row[_OHLCV_CLOSE]
            if close is None:
                continue
            by_timestamp[ts] = Sample(ts, Decimal(str(close)))
        except (IndexError, TypeError, ValueError, ArithmeticError):
            continue

    ordered = [by_timestamp[ts] for ts in sorted(by_timestamp)]
    return tuple(ordered[-limit:]) if limit > 0 else ()
