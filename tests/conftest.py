"""Shared test fixtures for the price watcher."""

import pytest

from cryptowatcher.config import AppSettings, DashboardSettings, ExchangeSettings


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults and logging to stderr."""
    return AppSettings(
        log_level="DEBUG",
        log_file=None,
        exchange=ExchangeSettings(request_timeout=1.0),
        dashboard=DashboardSettings(symbols=["BTC", "ETH"], refresh_interval=60),
    )


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep host environment variables and .env files out of settings."""
    for name in (
        "DASHBOARD_SYMBOLS",
        "DASHBOARD_REFRESH_INTERVAL",
        "DASHBOARD_PAGE_SIZE",
        "EXCHANGE_EXCHANGE_ID",
        "EXCHANGE_QUOTE_ASSET",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
