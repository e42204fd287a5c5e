"""Dashboard main loop -- owns all asset state and drives fetch cycles.

Each iteration waits for one event and reacts:
  - TICK / FORCE_REFRESH: launch a background fetch cycle for every asset
  - FETCH_COMPLETE: merge the whole cycle's outcomes, then redraw
  - NEXT / PREV: move the page cursor, then redraw
  - RESIZE: redraw
  - QUIT: stop, without waiting for any in-flight cycle

Fetch cycles never run inside the loop body. A cycle is an asyncio task
that reports back by posting FETCH_COMPLETE into the same event stream, so
pagination and quit stay responsive however slow the network is. All
outcomes of a cycle are merged in one step, so a redraw never shows two
cycles' worth of updates mixed across assets.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

import structlog

from cryptowatcher.events import Event, EventKind, EventSource
from cryptowatcher.exceptions import FetchError
from cryptowatcher.history import DEFAULT_CAPACITY
from cryptowatcher.logging import get_logger
from cryptowatcher.market_data.fetcher import Fetcher, FetchResults
from cryptowatcher.models import FetchRequest
from cryptowatcher.state import AssetSnapshot, AssetState, Pagination

logger = get_logger(__name__)


class LoopState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class CycleResult:
    """Payload of a FETCH_COMPLETE event."""

    cycle_id: int
    outcomes: FetchResults


@dataclass(frozen=True)
class DashboardView:
    """Everything the renderer needs for one frame, copied out of the loop."""

    assets: tuple[AssetSnapshot, ...]
    current_page: int
    total_pages: int
    status_message: str
    last_update_age: float | None  # seconds since the last completed cycle
    fetching: bool

    @property
    def last_update_str(self) -> str:
        if self.last_update_age is None:
            return "Never"
        secs = int(self.last_update_age)
        if secs < 60:
            return f"{secs}s ago"
        return f"{secs // 60}m ago"


class Dashboard:
    """Event-driven loop over a fixed, ordered set of tracked assets.

    Args:
        symbols: Tracked market symbols in display order (duplicates ignored).
        fetcher: Concurrent per-asset fetcher.
        events: Merged event stream; also receives FETCH_COMPLETE.
        render: Called with a fresh DashboardView after every state change.
        page_size: Charts per page (1-4).
        history_capacity: Samples kept per asset.
    """

    def __init__(
        self,
        symbols: Sequence[str],
        fetcher: Fetcher,
        events: EventSource,
        render: Callable[[DashboardView], None],
        page_size: int = 4,
        history_capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        self._assets: dict[str, AssetState] = {}
        for symbol in symbols:
            if symbol not in self._assets:
                self._assets[symbol] = AssetState.create(symbol, history_capacity)
        self._fetcher = fetcher
        self._events = events
        self._render = render
        self._pagination = Pagination(page_size=page_size, total_assets=len(self._assets))
        self._state = LoopState.RUNNING
        self._fetch_task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._cycle_id = 0
        self._status_message = "Starting..."
        self._last_update: float | None = None  # time.monotonic()

    # ──────────────────────────────────────────────
    # Read-only accessors
    # ──────────────────────────────────────────────

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def pagination(self) -> Pagination:
        return self._pagination

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def fetch_in_flight(self) -> bool:
        return self._fetch_task is not None and not self._fetch_task.done()

    def asset(self, symbol: str) -> AssetState:
        return self._assets[symbol]

    def symbols(self) -> list[str]:
        return list(self._assets)

    def view(self) -> DashboardView:
        """Snapshot the visible page for the renderer."""
        ordered = list(self._assets.values())
        visible = tuple(ordered[i].snapshot() for i in self._pagination.visible_range())
        age = None if self._last_update is None else time.monotonic() - self._last_update
        return DashboardView(
            assets=visible,
            current_page=self._pagination.current_page,
            total_pages=self._pagination.total_pages,
            status_message=self._status_message,
            last_update_age=age,
            fetching=self.fetch_in_flight,
        )

    # ──────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────

    async def run(self) -> None:
        """Run until QUIT. Starts with an immediate history-loading cycle."""
        logger.info("dashboard_started", assets=len(self._assets))
        self._start_fetch_cycle("Loading history...")
        self._redraw()

        while self._state is LoopState.RUNNING:
            event = await self._events.next()
            self.handle(event)

        self._abandon_fetch()
        logger.info("dashboard_stopped")

    def handle(self, event: Event) -> None:
        """Apply one event to the dashboard state."""
        if self._state is LoopState.STOPPED:
            return

        kind = event.kind
        if kind is EventKind.QUIT:
            self._state = LoopState.STOPPED
            return

        if kind is EventKind.TICK:
            self._start_fetch_cycle("Fetching...")
        elif kind is EventKind.FORCE_REFRESH:
            self._start_fetch_cycle("Refreshing...")
        elif kind is EventKind.FETCH_COMPLETE:
            self._merge(event.payload)
        elif kind is EventKind.NEXT:
            if not self._pagination.next():
                return
        elif kind is EventKind.PREV:
            if not self._pagination.prev():
                return
        elif kind is EventKind.RESIZE:
            pass
        else:
            logger.debug("unhandled_event", kind=kind)
            return

        self._redraw()

    # ──────────────────────────────────────────────
    # Fetch cycles
    # ──────────────────────────────────────────────

    def _start_fetch_cycle(self, status: str) -> None:
        if self.fetch_in_flight:
            logger.info("fetch_cycle_skipped_in_flight", cycle_id=self._cycle_id)
            self._status_message = "Refresh already in progress"
            return

        self._cycle_id += 1
        requests = [
            FetchRequest(symbol=state.symbol, include_history=not state.history_loaded)
            for state in self._assets.values()
        ]
        self._status_message = status
        logger.info(
            "fetch_cycle_started",
            cycle_id=self._cycle_id,
            assets=len(requests),
            with_history=sum(1 for r in requests if r.include_history),
        )
        self._fetch_task = asyncio.create_task(self._run_fetch_cycle(self._cycle_id, requests))

    async def _run_fetch_cycle(self, cycle_id: int, requests: list[FetchRequest]) -> None:
        # Task-local; tags only this cycle's records
        structlog.contextvars.bind_contextvars(cycle_id=cycle_id)
        try:
            outcomes = await self._fetcher.fetch_all(requests)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("fetch_cycle_error", cycle_id=cycle_id, error=str(exc), exc_info=True)
            outcomes = {r.symbol: FetchError(r.symbol, repr(exc)) for r in requests}
        self._events.post(Event(EventKind.FETCH_COMPLETE, CycleResult(cycle_id, outcomes)))

    def _merge(self, result: CycleResult) -> None:
        """Apply one complete cycle's outcomes to every asset at once."""
        first_error: FetchError | None = None
        for symbol, state in self._assets.items():
            outcome = result.outcomes.get(symbol)
            if outcome is None:
                continue
            if isinstance(outcome, FetchError):
                state.mark_failed(outcome)
                if first_error is None:
                    first_error = outcome
                continue
            try:
                state.apply(outcome)
            except Exception as exc:
                error = FetchError(symbol, f"merge failed: {exc}")
                logger.error("merge_failed", symbol=symbol, error=str(exc), exc_info=True)
                state.mark_failed(error)
            if first_error is None and state.last_error is not None:
                first_error = state.last_error

        self._last_update = time.monotonic()
        if first_error is not None:
            self._status_message = f"Error fetching {first_error.symbol}: {first_error.cause}"
        else:
            self._status_message = "Updated"
        logger.info(
            "fetch_cycle_merged",
            cycle_id=result.cycle_id,
            failed=sum(1 for v in result.outcomes.values() if isinstance(v, FetchError)),
        )

    def _abandon_fetch(self) -> None:
        if self.fetch_in_flight:
            assert self._fetch_task is not None
            logger.info("fetch_cycle_abandoned", cycle_id=self._cycle_id)
            self._fetch_task.cancel()
        self._fetch_task = None

    def _redraw(self) -> None:
        try:
            self._render(self.view())
        except Exception:
            logger.warning("render_failed", exc_info=True)
