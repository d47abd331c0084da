"""View state: fold/collapse, visible lines, scrolling, search, commit log."""

from .search import SearchMatch, SearchState, find_matches, nearest_match_index, recompute_matches
from .state import (
    COMMIT_LOG_SCREEN,
    DIFF_SCREEN,
    NORMAL_MODE,
    SEARCH_LEAD_LINES,
    SEARCH_MODE,
    CommitLogState,
    ViewState,
)

__all__ = [
    "COMMIT_LOG_SCREEN",
    "DIFF_SCREEN",
    "NORMAL_MODE",
    "SEARCH_LEAD_LINES",
    "SEARCH_MODE",
    "CommitLogState",
    "SearchMatch",
    "SearchState",
    "ViewState",
    "find_matches",
    "nearest_match_index",
    "recompute_matches",
]
