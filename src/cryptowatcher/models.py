"""Shared data models for the price watcher.

All prices and volumes use Decimal. Timestamps are Unix milliseconds.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class Sample:
    """One (timestamp, price) observation in an asset's history."""

    timestamp_ms: int
    price: Decimal

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError(f"sample price must be >= 0, got {self.price}")


@dataclass(frozen=True)
class TickerStats:
    """Decoded 24h ticker statistics for a single asset."""

    last_price: Decimal
    high_24h: Decimal
    low_24h: Decimal
    volume_24h: Decimal
    change_24h_pct: Decimal
    timestamp_ms: int


@dataclass(frozen=True)
class FetchRequest:
    """What to fetch for one asset in one cycle."""

    symbol: str
    include_history: bool = False


@dataclass(frozen=True)
class FetchOutcome:
    """Successful per-asset fetch result handed back to the dashboard.

    history is None unless the request asked for it and the klines arrived;
    history_error carries the cause when the kline request failed.
    """

    symbol: str
    stats: TickerStats
    history: tuple[Sample, ...] | None = None
    history_error: str | None = None
    fetched_at: float = field(default_factory=time.time)
