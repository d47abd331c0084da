"""Burst coalescing for raw filesystem events.

Raw paths arrive from the watch backend's thread. A single worker thread
groups them into windows that open with the first path and close after the
debounce interval, classifies each window as a batch, and emits at most one
change signal per window.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from queue import Empty, Queue

logger = logging.getLogger(__name__)

IDLE_CHECK_SECONDS = 1.0


class ChangeDebouncer:
    """Collapse bursts of raw paths into single change signals.

    ``relevant`` filters one window's paths; ``emit`` sends the signal and
    returns ``False`` once its destination is closed, which stops the worker.
    ``on_idle`` runs whenever no path arrived for ``idle_seconds``.
    """

    def __init__(
        self,
        relevant: Callable[[list[Path]], list[Path]],
        emit: Callable[[], bool],
        debounce_seconds: float,
        on_idle: Callable[[], None] | None = None,
        idle_seconds: float = IDLE_CHECK_SECONDS,
    ) -> None:
        self._relevant = relevant
        self._emit = emit
        self.debounce_seconds = max(0.0, debounce_seconds)
        self._on_idle = on_idle
        self._idle_seconds = idle_seconds
        self._raw: Queue[Path | None] = Queue()
        self._closed = threading.Event()
        self._thread: threading.Thread | None = None
        self.signals_emitted = 0

    def submit(self, path: Path) -> None:
        """Queue one raw event path; safe to call from any thread."""
        if not self._closed.is_set():
            self._raw.put(path)

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run,
            name="git-monitor-debounce",
            daemon=True,
        )
        self._thread.start()

    def close(self, timeout: float = 1.0) -> None:
        """Stop the worker; pending, not yet classified paths are discarded."""
        self._closed.set()
        self._raw.put(None)
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)

    def _collect_window(self, first: Path) -> list[Path] | None:
        """Gather paths until the window closes; ``None`` means shutdown."""
        window = [first]
        deadline = time.monotonic() + self.debounce_seconds
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return window
            try:
                path = self._raw.get(timeout=remaining)
            except Empty:
                return window
            if path is None:
                return None
            window.append(path)

    def process_window(self, window: list[Path]) -> bool:
        """Classify one window and emit when anything in it counts.

        Returns ``False`` only when the signal destination has been closed.
        """
        relevant = self._relevant(window)
        if not relevant:
            logger.debug("ignored debounce window of %d event(s)", len(window))
            return True
        logger.debug("change window: %d event(s), %d relevant", len(window), len(relevant))
        if not self._emit():
            return False
        self.signals_emitted += 1
        return True

    def _run(self) -> None:
        while not self._closed.is_set():
            try:
                first = self._raw.get(timeout=self._idle_seconds)
            except Empty:
                if self._on_idle is not None:
                    self._on_idle()
                continue
            if first is None:
                return
            window = self._collect_window(first)
            if window is None or self._closed.is_set():
                return
            try:
                keep_running = self.process_window(window)
            except Exception:
                logger.exception("failed to classify %d filesystem event(s)", len(window))
                continue
            if not keep_running:
                logger.debug("signal channel closed; debounce worker exiting")
                return
