"""Single ordered event stream for the dashboard loop.

Every origin (the refresh timer, the keyboard reader, OS signals, explicit
refresh requests and background fetch cycles reporting completion) posts
into one FIFO asyncio.Queue. The consumer suspends on the queue and does
nothing between events, so no origin is polled and none can starve
another.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any

from cryptowatcher.logging import get_logger

logger = get_logger(__name__)


class EventKind(str, Enum):
    """Kinds of events the dashboard loop reacts to."""

    TICK = "tick"
    FORCE_REFRESH = "force_refresh"
    NEXT = "next"
    PREV = "prev"
    QUIT = "quit"
    RESIZE = "resize"
    FETCH_COMPLETE = "fetch_complete"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    payload: Any = None


class EventSource:
    """Merges timer ticks, user input and fetch completions into one stream.

    Args:
        refresh_interval: Seconds between TICK events.
    """

    def __init__(self, refresh_interval: float = 60.0) -> None:
        if refresh_interval <= 0:
            raise ValueError(f"refresh_interval must be > 0, got {refresh_interval}")
        self._refresh_interval = refresh_interval
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._timer_task: asyncio.Task | None = None  # type: ignore[type-arg]

    @property
    def refresh_interval(self) -> float:
        return self._refresh_interval

    async def start(self) -> None:
        """Begin emitting TICK events in the background."""
        if self._timer_task is not None:
            logger.warning("event_source_already_running")
            return
        self._timer_task = asyncio.create_task(self._timer_loop())
        logger.info("event_source_started", refresh_interval=self._refresh_interval)

    async def stop(self) -> None:
        """Stop the refresh timer."""
        if self._timer_task is not None:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None
        logger.info("event_source_stopped")

    async def _timer_loop(self) -> None:
        while True:
            await asyncio.sleep(self._refresh_interval)
            self.post(Event(EventKind.TICK))

    def post(self, event: Event) -> None:
        """Enqueue an event. Must be called from the event loop's thread."""
        self._queue.put_nowait(event)

    def request_refresh(self) -> None:
        self.post(Event(EventKind.FORCE_REFRESH))

    def request_quit(self) -> None:
        self.post(Event(EventKind.QUIT))

    async def next(self) -> Event:
        """Suspend until the next event is available."""
        return await self._queue.get()
