"""Entry point for the terminal price watcher.

Validates configuration before any network or terminal I/O, then wires the
components together and runs the dashboard on a single asyncio event loop.

Component wiring order (in run):
1. MarketDataClient (ccxt, public endpoints)
2. Fetcher (concurrent per-asset fetches)
3. EventSource (timer + keyboard + signals + fetch completions)
4. TerminalDisplay (rich Live, the only terminal writer)
5. Dashboard (main loop, owns all asset state)

Exit codes: 0 on user quit, 1 on configuration error.
"""

import asyncio
import sys
from collections.abc import Sequence

from cryptowatcher.config import AppSettings, build_settings
from cryptowatcher.dashboard import Dashboard
from cryptowatcher.events import EventSource
from cryptowatcher.exceptions import ConfigError
from cryptowatcher.exchange.ccxt_client import CcxtMarketDataClient
from cryptowatcher.keyboard import KeyboardInput, install_signal_handlers
from cryptowatcher.logging import get_logger, setup_logging
from cryptowatcher.market_data.fetcher import Fetcher
from cryptowatcher.ui.display import TerminalDisplay


async def run(settings: AppSettings) -> None:
    """Run the dashboard until the user quits."""
    logger = get_logger("cryptowatcher.main")
    dashboard_settings = settings.dashboard

    client = CcxtMarketDataClient(settings.exchange)
    fetcher = Fetcher(
        client,
        timeout=settings.exchange.request_timeout,
        history_limit=dashboard_settings.history_capacity,
        timeframe=settings.exchange.kline_timeframe,
    )
    events = EventSource(refresh_interval=dashboard_settings.refresh_interval)

    logger.info(
        "cryptowatcher_starting",
        symbols=settings.market_symbols,
        refresh_interval=dashboard_settings.refresh_interval,
        exchange=settings.exchange.exchange_id,
    )

    try:
        with TerminalDisplay() as display, KeyboardInput(events):
            install_signal_handlers(events)
            dashboard = Dashboard(
                symbols=settings.market_symbols,
                fetcher=fetcher,
                events=events,
                render=display.update,
                page_size=dashboard_settings.page_size,
                history_capacity=dashboard_settings.history_capacity,
            )
            await events.start()
            try:
                await dashboard.run()
            finally:
                await events.stop()
    finally:
        await client.close()
        logger.info("cryptowatcher_stopped")


def main(argv: Sequence[str] | None = None) -> int:
    """Synchronous entry point. Returns the process exit code."""
    try:
        settings = build_settings(argv)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    setup_logging(settings.log_level, settings.log_file)
    asyncio.run(run(settings))
    return 0


if __name__ == "__main__":
    sys.exit(main())
