"""Exception types shared across git-monitor.

Environment errors abort startup; query errors are recovered by the
controller, which keeps the last good snapshot on screen.
"""

from __future__ import annotations


class GitMonitorError(Exception):
    """Base class for git-monitor specific errors."""


class NotARepositoryError(GitMonitorError):
    """Raised when the target path is missing or not inside a git work tree."""


class TerminalSetupError(GitMonitorError):
    """Raised when the controlling terminal cannot be put into TUI mode."""


class GitQueryError(GitMonitorError):
    """Raised when a git subprocess fails, times out, or exits non-zero."""
