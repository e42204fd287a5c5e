"""Raw keyboard input wired into the event stream.

The terminal is switched to cbreak mode so single key presses arrive
immediately, and stdin is watched with the event loop's reader callback
rather than a polling thread. Bytes are decoded into events; anything
unrecognised is dropped.
"""

import asyncio
import os
import signal
import sys
from typing import TextIO

from cryptowatcher.events import Event, EventKind, EventSource
from cryptowatcher.logging import get_logger

logger = get_logger(__name__)

ESC = 0x1B
ESCAPE_TIMEOUT = 0.05  # seconds

KEY_BINDINGS: dict[bytes, EventKind] = {
    b"q": EventKind.QUIT,
    b"Q": EventKind.QUIT,
    b"\x1b": EventKind.QUIT,
    b"r": EventKind.FORCE_REFRESH,
    b"R": EventKind.FORCE_REFRESH,
    b"h": EventKind.PREV,
    b"k": EventKind.PREV,
    b"l": EventKind.NEXT,
    b"j": EventKind.NEXT,
    # arrow keys, normal and application cursor mode
    b"\x1b[D": EventKind.PREV,
    b"\x1b[A": EventKind.PREV,
    b"\x1b[C": EventKind.NEXT,
    b"\x1b[B": EventKind.NEXT,
    b"\x1bOD": EventKind.PREV,
    b"\x1bOA": EventKind.PREV,
    b"\x1bOC": EventKind.NEXT,
    b"\x1bOB": EventKind.NEXT,
}


class KeyDecoder:
    """Incremental key decoder that holds back an unfinished escape sequence.

    A read can end in the middle of an arrow key (``ESC`` or ``ESC [``), so
    that prefix is kept until the next read completes it. A lone ``ESC`` is
    only a key press once flush() says nothing followed it. ``ESC x`` (Alt+x)
    is consumed and ignored.
    """

    def __init__(self) -> None:
        self._pending = b""

    @property
    def pending(self) -> bool:
        return bool(self._pending)

    def feed(self, data: bytes) -> list[EventKind]:
        data = self._pending + data
        self._pending = b""
        kinds: list[EventKind] = []
        i = 0
        while i < len(data):
            if data[i] != ESC:
                key = data[i : i + 1]
            elif i + 1 == len(data):
                self._pending = data[i:]
                break
            elif data[i + 1] == ESC:
                key = data[i : i + 1]
            elif data[i + 1] in b"[O":
                if i + 2 == len(data):
                    self._pending = data[i:]
                    break
                key = data[i : i + 3]
            else:
                key = data[i : i + 2]
            i += len(key)
            kind = KEY_BINDINGS.get(key)
            if kind is not None:
                kinds.append(kind)
        return kinds

    def flush(self) -> list[EventKind]:
        """Resolve whatever is held back once no more bytes arrived."""
        pending, self._pending = self._pending, b""
        return [EventKind.QUIT] if pending == b"\x1b" else []


def decode_keys(data: bytes) -> list[EventKind]:
    """Map one complete chunk of terminal bytes to event kinds, ignoring unknown keys."""
    decoder = KeyDecoder()
    return decoder.feed(data) + decoder.flush()


class KeyboardInput:
    """Context manager that feeds key presses into an EventSource.

    Must be entered from inside a running event loop.

    Args:
        source: Event stream receiving the decoded key events.
        stream: Input to watch; stdin by default.
        escape_timeout: Seconds to wait for the rest of an escape sequence
            before a lone ESC counts as a key press.
    """

    def __init__(
        self,
        source: EventSource,
        stream: TextIO | None = None,
        escape_timeout: float = ESCAPE_TIMEOUT,
    ) -> None:
        self._source = source
        self._stream = stream if stream is not None else sys.stdin
        self._escape_timeout = escape_timeout
        self._decoder = KeyDecoder()
        self._escape_timer: asyncio.TimerHandle | None = None
        self._fd: int | None = None
        self._saved_attrs: list | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def __enter__(self) -> "KeyboardInput":
        self._loop = asyncio.get_running_loop()
        self._fd = self._stream.fileno()
        if os.isatty(self._fd):
            import termios
            import tty

            self._saved_attrs = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)
        self._loop.add_reader(self._fd, self._on_readable)
        logger.debug("keyboard_input_attached", fd=self._fd, tty=self._saved_attrs is not None)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._cancel_escape_timer()
        if self._loop is not None and self._fd is not None:
            self._loop.remove_reader(self._fd)
        if self._saved_attrs is not None and self._fd is not None:
            import termios

            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_attrs)
            self._saved_attrs = None
        logger.debug("keyboard_input_detached")

    def _detach(self) -> None:
        assert self._loop is not None and self._fd is not None
        self._loop.remove_reader(self._fd)

    def _on_readable(self) -> None:
        assert self._fd is not None and self._loop is not None
        try:
            data = os.read(self._fd, 64)
        except OSError as exc:
            # e.g. EIO after the terminal hangs up; signals still work
            self._detach()
            logger.warning("keyboard_input_error", error=str(exc))
            return
        if not data:
            # EOF: stop watching, the user can still quit via signals
            self._detach()
            logger.info("keyboard_input_eof")
            return

        self._cancel_escape_timer()
        self._post(self._decoder.feed(data))
        if self._decoder.pending:
            self._escape_timer = self._loop.call_later(self._escape_timeout, self._flush_escape)

    def _flush_escape(self) -> None:
        self._escape_timer = None
        self._post(self._decoder.flush())

    def _cancel_escape_timer(self) -> None:
        if self._escape_timer is not None:
            self._escape_timer.cancel()
            self._escape_timer = None

    def _post(self, kinds: list[EventKind]) -> None:
        for kind in kinds:
            self._source.post(Event(kind))


def install_signal_handlers(source: EventSource) -> None:
    """Route SIGINT/SIGTERM to QUIT and SIGWINCH to RESIZE.

    Must be called after the asyncio event loop is running.
    """
    loop = asyncio.get_running_loop()

    def _quit_handler() -> None:
        logger.info("quit_signal_received")
        source.request_quit()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _quit_handler)

    if hasattr(signal, "SIGWINCH"):
        loop.add_signal_handler(signal.SIGWINCH, lambda: source.post(Event(EventKind.RESIZE)))
