"""Terminal control helpers for the dashboard session.

Owns the raw-mode and alternate-screen lifecycle as one scoped resource:
``raw_mode()`` guarantees the saved tty state is restored on every exit path,
including SIGTERM/SIGHUP, which are turned into ``SystemExit`` while active.
"""

from __future__ import annotations

import contextlib
import logging
import os
import signal
import termios
import tty

from ..errors import TerminalSetupError

logger = logging.getLogger(__name__)

_TERMINATING_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


def _raise_system_exit(signum, _frame) -> None:
    raise SystemExit(128 + signum)


class TerminalController:
    """Manage terminal mode transitions for the TUI."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        """Capture tty state and bind stdin/stdout file descriptors."""
        if not os.isatty(stdin_fd) or not os.isatty(stdout_fd):
            raise TerminalSetupError("git-monitor needs an interactive terminal on stdin and stdout")
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        try:
            self._saved_tty_state = termios.tcgetattr(stdin_fd)
        except termios.error as exc:
            raise TerminalSetupError(f"cannot read terminal attributes: {exc}") from exc
        self.tui_active = False

    def enable_tui_mode(self) -> None:
        """Enter raw alternate-screen mode with the cursor hidden."""
        try:
            tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        except termios.error as exc:
            raise TerminalSetupError(f"cannot enable raw mode: {exc}") from exc
        os.write(self.stdout_fd, b"\x1b[?1049h\x1b[?25l")
        self.tui_active = True
        logger.debug("terminal entered TUI mode")

    def disable_tui_mode(self) -> None:
        """Restore normal terminal state."""
        # Show cursor and restore the main screen buffer.
        os.write(self.stdout_fd, b"\x1b[?25h\x1b[?1049l")
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)
        self.tui_active = False
        logger.debug("terminal left TUI mode")

    @contextlib.contextmanager
    def raw_mode(self):
        """Bracket the session with TUI enter/exit, restoring on any exit."""
        previous_handlers = {}
        for signum in _TERMINATING_SIGNALS:
            previous_handlers[signum] = signal.signal(signum, _raise_system_exit)
        try:
            self.enable_tui_mode()
            yield
        finally:
            try:
                if self.tui_active:
                    self.disable_tui_mode()
            finally:
                for signum, handler in previous_handlers.items():
                    signal.signal(signum, handler)

    @contextlib.contextmanager
    def suspended(self):
        """Hand the terminal to a foreground process for the block's duration."""
        self.disable_tui_mode()
        try:
            yield
        finally:
            self.enable_tui_mode()
