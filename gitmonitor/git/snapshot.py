"""Immutable repository snapshot types."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from ..diff import FileDiff

STAGED = "staged"
UNSTAGED = "unstaged"


@dataclass(frozen=True)
class CommitEntry:
    """One ``git log`` row."""

    hash: str
    message: str
    author: str
    date_relative: str

    def summary(self) -> str:
        """Single-line text used for display and commit-log search."""
        return f"{self.hash} {self.message} {self.author} {self.date_relative}"


@dataclass(frozen=True)
class RepoSnapshot:
    """Everything needed from git to draw one frame.

    Replaced wholesale on every successful refresh. ``staged_files`` and
    ``unstaged_files`` come from independent ``git diff`` invocations.
    """

    branch: str
    last_commit_hash: str | None
    last_commit_message: str | None
    staged_count: int
    unstaged_count: int
    staged_files: tuple[FileDiff, ...]
    unstaged_files: tuple[FileDiff, ...]
    refreshed_at: float = field(default_factory=time.monotonic)
    error: str | None = None

    def files_for(self, view: str) -> tuple[FileDiff, ...]:
        """Return the file sections backing the ``staged``/``unstaged`` view."""
        return self.staged_files if view == STAGED else self.unstaged_files

    @property
    def short_hash(self) -> str:
        if self.last_commit_hash and len(self.last_commit_hash) >= 7:
            return self.last_commit_hash[:7]
        return "-------"


def empty_snapshot(reason: str) -> RepoSnapshot:
    """Return the clearly-marked placeholder used when the first query fails."""
    return RepoSnapshot(
        branch="(unknown)",
        last_commit_hash=None,
        last_commit_message=None,
        staged_count=0,
        unstaged_count=0,
        staged_files=(),
        unstaged_files=(),
        error=reason,
    )
