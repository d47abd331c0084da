"""Git query backend and repository snapshot types."""

from .backend import (
    DEFAULT_COMMIT_LOG_LIMIT,
    GitBackend,
    git_log,
    git_show,
    parse_log,
    parse_status_counts,
    query_snapshot,
    resolve_git_paths,
    run_git,
)
from .snapshot import STAGED, UNSTAGED, CommitEntry, RepoSnapshot, empty_snapshot

__all__ = [
    "DEFAULT_COMMIT_LOG_LIMIT",
    "STAGED",
    "UNSTAGED",
    "CommitEntry",
    "GitBackend",
    "RepoSnapshot",
    "empty_snapshot",
    "git_log",
    "git_show",
    "parse_log",
    "parse_status_counts",
    "query_snapshot",
    "resolve_git_paths",
    "run_git",
]
