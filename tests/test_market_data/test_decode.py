"""Tests for ccxt payload decoding."""

from decimal import Decimal, InvalidOperation

import pytest

from cryptowatcher.market_data.decode import parse_klines, parse_ticker
from factories import BASE_TS, KLINE_MS

# Mimics a ccxt unified ticker for Binance spot
MOCK_TICKER = {
    "symbol": "BTC/USDT",
    "timestamp": BASE_TS,
    "last": 50000.0,
    "high": 51000.5,
    "low": 48000.25,
    "baseVolume": 12345.678,
    "percentage": -1.5,
}


class TestParseTicker:
    def test_all_fields_decoded_as_decimal(self) -> None:
        stats = parse_ticker(MOCK_TICKER)
        assert stats.last_price == Decimal("50000.0")
        assert stats.high_24h == Decimal("51000.5")
        assert stats.low_24h == Decimal("48000.25")
        assert stats.volume_24h == Decimal("12345.678")
        assert stats.change_24h_pct == Decimal("-1.5")
        assert stats.timestamp_ms == BASE_TS
        assert isinstance(stats.last_price, Decimal)

    def test_missing_optional_fields_default_to_zero(self) -> None:
        stats = parse_ticker({"last": "3000", "timestamp": BASE_TS})
        assert stats.last_price == Decimal("3000")
        assert stats.high_24h == Decimal("0")
        assert stats.volume_24h == Decimal("0")
        assert stats.change_24h_pct == Decimal("0")

    def test_missing_timestamp_uses_now(self) -> None:
        stats = parse_ticker({"last": 1.0}, now_ms=BASE_TS + 5)
        assert stats.timestamp_ms == BASE_TS + 5

    def test_missing_last_price_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_ticker({"high": 1.0})

    def test_garbage_price_raises(self) -> None:
        with pytest.raises(InvalidOperation):
            parse_ticker({"last": "not-a-number"})


class TestParseKlines:
    def test_extracts_open_time_and_close(self) -> None:
        rows = [
            [BASE_TS, 1.0, 2.0, 0.5, 1.5, 10.0],
            [BASE_TS + KLINE_MS, 1.5, 2.5, 1.0, 2.25, 11.0],
        ]
        samples = parse_klines(rows, limit=60)
        assert [s.timestamp_ms for s in samples] == [BASE_TS, BASE_TS + KLINE_MS]
        assert [s.price for s in samples] == [Decimal("1.5"), Decimal("2.25")]

    def test_sorted_and_deduplicated(self) -> None:
        rows = [
            [BASE_TS + KLINE_MS, 0, 0, 0, 2.0, 0],
            [BASE_TS, 0, 0, 0, 1.0, 0],
            [BASE_TS + KLINE_MS, 0, 0, 0, 3.0, 0],
        ]
        samples = parse_klines(rows, limit=60)
        assert [s.timestamp_ms for s in samples] == [BASE_TS, BASE_TS + KLINE_MS]
        assert samples[-1].price == Decimal("3.0")

    def test_malformed_rows_skipped(self) -> None:
        rows = [
            [BASE_TS, 0, 0, 0, 1.0, 0],
            [BASE_TS + KLINE_MS],
            [None, 0, 0, 0, 1.0, 0],
            [BASE_TS + 2 * KLINE_MS, 0, 0, 0, None, 0],
            [BASE_TS + 3 * KLINE_MS, 0, 0, 0, "bad", 0],
            [BASE_TS + 4 * KLINE_MS, 0, 0, 0, 4.0, 0],
        ]
        samples = parse_klines(rows, limit=60)
        assert [s.price for s in samples] == [Decimal("1.0"), Decimal("4.0")]

    def test_trimmed_to_newest_limit(self) -> None:
        rows = [[BASE_TS + i * KLINE_MS, 0, 0, 0, float(i), 0] for i in range(70)]
        samples = parse_klines(rows, limit=60)
        assert len(samples) == 60
        assert samples[0].timestamp_ms == BASE_TS + 10 * KLINE_MS

    def test_empty(self) -> None:
        assert parse_klines([], limit=60) == ()
