"""The only component that writes frames to the terminal."""

from rich.console import Console
from rich.live import Live

from cryptowatcher.dashboard import DashboardView
from cryptowatcher.logging import get_logger
from cryptowatcher.ui.renderer import render

logger = get_logger(__name__)


class TerminalDisplay:
    """Full-screen rich Live display refreshed only when told to.

    Use as a context manager; update() outside the context is ignored.
    """

    def __init__(self, console: Console | None = None, screen: bool = True) -> None:
        self._console = console if console is not None else Console()
        self._screen = screen
        self._live: Live | None = None

    def __enter__(self) -> "TerminalDisplay":
        self._live = Live(
            console=self._console,
            screen=self._screen,
            auto_refresh=False,
            redirect_stdout=False,
            redirect_stderr=False,
        )
        self._live.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None

    def update(self, view: DashboardView) -> None:
        if self._live is None:
            logger.debug("display_update_ignored")
            return
        self._live.update(render(view), refresh=True)
