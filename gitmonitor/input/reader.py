"""Background terminal input reader with a pause handshake.

The reader polls the terminal with a short timeout so it notices a pause
request promptly. While paused it performs no reads at all, leaving the
terminal to a foreground process such as the pager, and it acknowledges the
pause by marking itself parked so the controller need not guess when the last
read has finished.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from ..events import Event, KeyPressed, Resized
from .keys import KeyDecoder

logger = logging.getLogger(__name__)

POLL_TIMEOUT_MS = 100
PAUSED_SLEEP_SECONDS = 0.05


class PauseGate:
    """Pause flag written by the controller and observed by the reader.

    ``request_pause``/``release`` belong to the controller; ``mark_parked`` and
    ``mark_running`` belong to the reader. Nothing here blocks the reader.
    """

    def __init__(self) -> None:
        self._requested = threading.Event()
        self._parked = threading.Event()

    @property
    def pause_requested(self) -> bool:
        return self._requested.is_set()

    @property
    def parked(self) -> bool:
        return self._parked.is_set()

    def request_pause(self) -> None:
        # An acknowledgement left over from an earlier pause must not count.
        self._parked.clear()
        self._requested.set()

    def wait_parked(self, timeout: float) -> bool:
        """Wait until the reader acknowledges the pause; ``False`` on timeout."""
        return self._parked.wait(timeout)

    def release(self) -> None:
        self._requested.clear()

    def mark_parked(self) -> None:
        self._parked.set()

    def mark_running(self) -> None:
        self._parked.clear()


class InputReader:
    """Thread that turns raw terminal input into key and resize events.

    ``send`` delivers one event and returns ``False`` once the destination is
    closed; the reader then exits. Read errors and end of input also end the
    thread quietly. ``measure_size`` reports ``(columns, lines)``; a change
    between polls produces a ``Resized`` event.
    """

    def __init__(
        self,
        fd: int,
        send: Callable[[Event], bool],
        gate: PauseGate,
        measure_size: Callable[[], tuple[int, int]] | None = None,
        poll_timeout_ms: int = POLL_TIMEOUT_MS,
    ) -> None:
        self.decoder = KeyDecoder(fd)
        self._send = send
        self.gate = gate
        self._measure_size = measure_size
        self._poll_timeout_ms = poll_timeout_ms
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None
        self._last_size: tuple[int, int] | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._last_size = self._current_size()
        self._thread = threading.Thread(target=self.run, name="git-monitor-input", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        self._stopped.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _current_size(self) -> tuple[int, int] | None:
        if self._measure_size is None:
            return None
        try:
            return self._measure_size()
        except OSError:
            return None

    def _check_resize(self) -> bool:
        """Send a resize event if the terminal size changed; ``False`` if closed."""
        size = self._current_size()
        if size is None or size == self._last_size:
            return True
        self._last_size = size
        return self._send(Resized(columns=size[0], lines=size[1]))

    def run(self) -> None:
        was_paused = False
        while not self._stopped.is_set():
            if self.gate.pause_requested:
                self.gate.mark_parked()
                was_paused = True
                time.sleep(PAUSED_SLEEP_SECONDS)
                continue
            self.gate.mark_running()
            if self.gate.pause_requested:
                continue
            if was_paused:
                # The controller redraws after a pause; don't report the
                # size it is about to measure anyway.
                self._last_size = self._current_size()
                was_paused = False

            try:
                key = self.decoder.read_key(timeout_ms=self._poll_timeout_ms)
            except (OSError, ValueError, EOFError) as exc:
                logger.debug("input reader stopping: %s", exc)
                return

            if not self._check_resize():
                return
            if key == "":
                continue
            if not self._send(KeyPressed(key)):
                return
