"""Per-asset dashboard state and pagination.

AssetState is owned exclusively by the dashboard loop. The fetcher never
holds a reference to it and the renderer only ever sees AssetSnapshot
copies, so no locking is needed.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from cryptowatcher.exceptions import FetchError, StaleSample
from cryptowatcher.history import DEFAULT_CAPACITY, HistoryBuffer
from cryptowatcher.logging import get_logger
from cryptowatcher.models import FetchOutcome, Sample

logger = get_logger(__name__)

_EMPTY_BOUNDS = (Decimal("0"), Decimal("100"))
_NO_TIME = "--:--"


@dataclass(frozen=True)
class AssetSnapshot:
    """Read-only view of one asset for the renderer."""

    symbol: str
    samples: tuple[Sample, ...]
    price: Decimal
    high_24h: Decimal
    low_24h: Decimal
    volume_24h: Decimal
    change_24h_pct: Decimal
    error: str | None = None

    @property
    def display_name(self) -> str:
        return self.symbol

    @property
    def stale(self) -> bool:
        """True when the last fetch failed and older data is being shown."""
        return self.error is not None

    def price_bounds(self) -> tuple[Decimal, Decimal]:
        """Chart y-axis bounds padded by 10% of the price range."""
        if not self.samples:
            return _EMPTY_BOUNDS
        prices = [s.price for s in self.samples]
        low, high = min(prices), max(prices)
        padding = (high - low) * Decimal("0.1")
        return low - padding, high + padding

    def time_labels(self) -> list[str]:
        """Local HH:MM labels for the first, middle and last sample."""
        if not self.samples:
            return [_NO_TIME, _NO_TIME, _NO_TIME]
        first = self.samples[0].timestamp_ms
        last = self.samples[-1].timestamp_ms
        return [_format_time(ts) for ts in (first, (first + last) // 2, last)]


def _format_time(ts_ms: int) -> str:
    try:
        return datetime.fromtimestamp(ts_ms / 1000).strftime("%H:%M")
    except (OverflowError, OSError, ValueError):
        return _NO_TIME


@dataclass
class AssetState:
    """One tracked asset: rolling history plus latest 24h statistics."""

    symbol: str
    history: HistoryBuffer = field(default_factory=lambda: HistoryBuffer(DEFAULT_CAPACITY))
    price: Decimal = Decimal("0")
    high_24h: Decimal = Decimal("0")
    low_24h: Decimal = Decimal("0")
    volume_24h: Decimal = Decimal("0")
    change_24h_pct: Decimal = Decimal("0")
    last_error: FetchError | None = None
    last_updated: float | None = None
    history_loaded: bool = False

    @classmethod
    def create(cls, symbol: str, capacity: int = DEFAULT_CAPACITY) -> "AssetState":
        return cls(symbol=symbol, history=HistoryBuffer(capacity))

    def apply(self, outcome: FetchOutcome) -> None:
        """Merge a successful fetch: bulk-load once, then append the live sample.

        Until the history has been bulk-loaded the statistics still update,
        but live samples are held off so the buffer stays empty for the
        load. A failed kline request marks the asset with its cause.
        """
        if outcome.history is not None and not self.history_loaded:
            self.history.bulk_load(outcome.history)
            self.history_loaded = True

        stats = outcome.stats
        self.price = stats.last_price
        self.high_24h = stats.high_24h
        self.low_24h = stats.low_24h
        self.volume_24h = stats.volume_24h
        self.change_24h_pct = stats.change_24h_pct

        if self.history_loaded:
            try:
                self.history.append(Sample(stats.timestamp_ms, stats.last_price))
            except StaleSample as exc:
                logger.debug("stale_sample_discarded", symbol=self.symbol, reason=str(exc))
        else:
            logger.debug("live_sample_deferred", symbol=self.symbol)

        if outcome.history_error is not None:
            self.last_error = FetchError(self.symbol, f"history: {outcome.history_error}")
        else:
            self.last_error = None
        self.last_updated = outcome.fetched_at

    def mark_failed(self, error: FetchError) -> None:
        """Record a failed fetch. History and statistics stay as they were."""
        self.last_error = error

    def snapshot(self) -> AssetSnapshot:
        return AssetSnapshot(
            symbol=self.symbol,
            samples=self.history.snapshot(),
            price=self.price,
            high_24h=self.high_24h,
            low_24h=self.low_24h,
            volume_24h=self.volume_24h,
            change_24h_pct=self.change_24h_pct,
            error=self.last_error.cause if self.last_error is not None else None,
        )


@dataclass
class Pagination:
    """Page cursor over the tracked assets. Navigation never wraps."""

    page_size: int
    total_assets: int
    current_page: int = 0

    def __post_init__(self) -> None:
        if not 1 <= self.page_size <= 4:
            raise ValueError(f"page_size must be between 1 and 4, got {self.page_size}")

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_assets / self.page_size))

    def next(self) -> bool:
        """Advance one page. Returns False (no-op) on the last page."""
        if self.current_page + 1 >= self.total_pages:
            return False
        self.current_page += 1
        return True

    def prev(self) -> bool:
        """Go back one page. Returns False (no-op) on the first page."""
        if self.current_page == 0:
            return False
        self.current_page -= 1
        return True

    def visible_range(self) -> range:
        start = self.current_page * self.page_size
        return range(start, min(start + self.page_size, self.total_assets))
