"""Tests for the command-line entry point."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cryptowatcher.main import main, run


def test_config_error_exits_with_status_1(capsys: pytest.CaptureFixture[str]) -> None:
    with patch("cryptowatcher.main.run", new_callable=AsyncMock) as run:
        code = main(["--coins", "BTC,???"])

    assert code == 1
    assert capsys.readouterr().err.startswith("Error: ")
    run.assert_not_called()


def test_zero_interval_rejected_before_any_io(capsys: pytest.CaptureFixture[str]) -> None:
    with (
        patch("cryptowatcher.main.setup_logging") as setup_logging,
        patch("cryptowatcher.main.run", new_callable=AsyncMock) as run,
    ):
        assert main(["-i", "0"]) == 1

    setup_logging.assert_not_called()
    run.assert_not_called()
    assert "refresh_interval" in capsys.readouterr().err


def test_clean_quit_exits_with_status_0() -> None:
    with (
        patch("cryptowatcher.main.setup_logging") as setup_logging,
        patch("cryptowatcher.main.run", new_callable=AsyncMock) as run,
    ):
        code = main(["-c", "sol", "--log-file", "watch.log"])

    assert code == 0
    setup_logging.assert_called_once_with("INFO", "watch.log")
    settings = run.await_args.args[0]
    assert settings.market_symbols == ["SOL/USDT"]


@pytest.mark.asyncio
async def test_run_closes_client_on_exit(mock_settings) -> None:
    client = MagicMock()
    client.close = AsyncMock()
    dashboard = MagicMock()
    dashboard.run = AsyncMock()

    with (
        patch("cryptowatcher.main.CcxtMarketDataClient", return_value=client),
        patch("cryptowatcher.main.TerminalDisplay") as display_cls,
        patch("cryptowatcher.main.KeyboardInput"),
        patch("cryptowatcher.main.install_signal_handlers"),
        patch("cryptowatcher.main.Dashboard", return_value=dashboard) as dashboard_cls,
    ):
        await run(mock_settings)

    dashboard.run.assert_awaited_once()
    client.close.assert_awaited_once()
    kwargs = dashboard_cls.call_args.kwargs
    assert kwargs["symbols"] == ["BTC/USDT", "ETH/USDT"]
    assert kwargs["render"] is display_cls.return_value.__enter__.return_value.update
