"""Repository filesystem watching with debounce and ignore filtering."""

from .classify import GIT_STATE_FILES, PathClassifier, is_interesting_git_path
from .debounce import ChangeDebouncer
from .ignore import GitIgnoreChecker
from .watcher import RepoWatcher

__all__ = [
    "GIT_STATE_FILES",
    "ChangeDebouncer",
    "GitIgnoreChecker",
    "PathClassifier",
    "RepoWatcher",
    "is_interesting_git_path",
]
