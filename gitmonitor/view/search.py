"""Incremental text search over the visible lines of the active screen.

Matching is a case-insensitive substring scan recomputed from scratch on every
query edit. Spans are character offsets into each line's text.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field


@dataclass(frozen=True)
class SearchMatch:
    """One occurrence of the query: line index plus ``[start, end)`` span."""

    line: int
    start: int
    end: int


@dataclass
class SearchState:
    query: str = ""
    forward: bool = True
    matches: list[SearchMatch] = field(default_factory=list)
    current: int = 0
    # True iff at least one match exists for ``query`` in the current lines.
    active: bool = False

    def current_match(self) -> SearchMatch | None:
        if not self.active or not self.matches:
            return None
        return self.matches[self.current]


def find_matches(lines: Sequence[str], query: str) -> list[SearchMatch]:
    """Return all non-overlapping case-insensitive occurrences in line order."""
    if not query:
        return []
    pattern = re.compile(re.escape(query), re.IGNORECASE)
    matches: list[SearchMatch] = []
    for line_idx, text in enumerate(lines):
        for found in pattern.finditer(text):
            matches.append(SearchMatch(line=line_idx, start=found.start(), end=found.end()))
    return matches


def recompute_matches(search: SearchState, lines: Sequence[str]) -> None:
    """Re-run ``search.query`` against ``lines`` and fix up the cursor."""
    search.matches = find_matches(lines, search.query)
    search.active = bool(search.matches)
    if not search.matches:
        search.current = 0
    elif search.current >= len(search.matches):
        search.current = len(search.matches) - 1


def nearest_match_index(
    matches: Sequence[SearchMatch],
    forward: bool,
    top_line: int,
    bottom_line: int,
) -> int:
    """Pick the match a confirmed search should land on.

    Forward searches take the first match at or after ``top_line``; backward
    searches take the last match at or before ``bottom_line``. When nothing
    qualifies the choice wraps to the first/last match respectively.
    """
    if forward:
        for idx, match in enumerate(matches):
            if match.line >= top_line:
                return idx
        return 0
    for idx in range(len(matches) - 1, -1, -1):
        if matches[idx].line <= bottom_line:
            return idx
    return len(matches) - 1


def step_match(search: SearchState, delta: int) -> SearchMatch | None:
    """Move the match cursor circularly by ``delta`` and return the new match."""
    if not search.active or not search.matches:
        return None
    search.current = (search.current + delta) % len(search.matches)
    return search.matches[search.current]
