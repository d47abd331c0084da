"""Mutable view state owned by the controller thread.

Derived fields (``visible_lines``, ``file_header_positions`` and search
matches) are recomputed synchronously whenever the file set, the active view
or the collapsed set changes; nothing derived survives a mutation stale.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..diff import DiffLine, FileDiff
from ..git.snapshot import STAGED, UNSTAGED, CommitEntry, RepoSnapshot
from .search import SearchMatch, SearchState, nearest_match_index, recompute_matches, step_match

NORMAL_MODE = "normal"
SEARCH_MODE = "search"

DIFF_SCREEN = "diff"
COMMIT_LOG_SCREEN = "commit_log"

SEARCH_LEAD_LINES = 5


@dataclass
class CommitLogState:
    entries: list[CommitEntry] = field(default_factory=list)
    selected: int = 0

    def move(self, delta: int) -> None:
        if not self.entries:
            self.selected = 0
            return
        self.selected = max(0, min(len(self.entries) - 1, self.selected + delta))

    def select_last(self) -> None:
        self.selected = max(0, len(self.entries) - 1)

    def selected_entry(self) -> CommitEntry | None:
        if 0 <= self.selected < len(self.entries):
            return self.entries[self.selected]
        return None


@dataclass
class ViewState:
    view: str = UNSTAGED
    screen: str = DIFF_SCREEN
    input_mode: str = NORMAL_MODE
    collapsed: set[str] = field(default_factory=set)
    files: tuple[FileDiff, ...] = ()
    visible_lines: list[DiffLine] = field(default_factory=list)
    file_header_positions: list[int] = field(default_factory=list)
    scroll: int = 0
    viewport_height: int = 0
    content_width: int = 80
    search: SearchState = field(default_factory=SearchState)
    commit_log: CommitLogState = field(default_factory=CommitLogState)
    should_quit: bool = False
    pager_content: str | None = None

    # -- derived lines -------------------------------------------------

    def set_files(self, files: Iterable[FileDiff]) -> None:
        """Adopt a new file set (refresh or view switch) and re-derive lines."""
        self.files = tuple(files)
        self.recompute_visible_lines()

    def recompute_visible_lines(self) -> None:
        """Flatten headers and uncollapsed bodies, then re-clamp and re-search."""
        lines: list[DiffLine] = []
        positions: list[int] = []
        for file_diff in self.files:
            positions.append(len(lines))
            lines.append(file_diff.header_line())
            if file_diff.filename not in self.collapsed:
                lines.extend(file_diff.lines)
        self.visible_lines = lines
        self.file_header_positions = positions
        self.clamp_scroll()
        if self.screen == DIFF_SCREEN and self.search.query:
            recompute_matches(self.search, self.search_lines())

    # -- scrolling -----------------------------------------------------

    def max_scroll(self) -> int:
        return max(0, len(self.visible_lines) - self.viewport_height)

    def clamp_scroll(self) -> None:
        self.scroll = max(0, min(self.scroll, self.max_scroll()))

    def set_viewport(self, height: int, width: int) -> None:
        """Apply geometry measured by the renderer for the upcoming frame."""
        self.viewport_height = max(0, height)
        self.content_width = max(1, width)
        self.clamp_scroll()

    def scroll_by(self, delta: int) -> None:
        self.scroll += delta
        self.clamp_scroll()

    def scroll_to(self, line: int) -> None:
        self.scroll = line
        self.clamp_scroll()

    def scroll_to_top(self) -> None:
        self.scroll = 0

    def scroll_to_bottom(self) -> None:
        self.scroll = self.max_scroll()

    def half_page(self) -> int:
        return max(1, self.viewport_height // 2)

    def page(self) -> int:
        return max(1, self.viewport_height)

    # -- views and files -----------------------------------------------

    def switch_view(self, snapshot: RepoSnapshot) -> None:
        """Flip staged/unstaged, resetting scroll and search."""
        self.view = STAGED if self.view == UNSTAGED else UNSTAGED
        self.scroll = 0
        self.clear_search()
        self.set_files(snapshot.files_for(self.view))

    def current_file_index(self) -> int | None:
        """Index into ``files`` of the section containing the top visible line."""
        current: int | None = None
        for idx, position in enumerate(self.file_header_positions):
            if position > self.scroll:
                break
            current = idx
        return current

    def next_file(self) -> None:
        for position in self.file_header_positions:
            if position > self.scroll:
                self.scroll_to(position)
                return

    def prev_file(self) -> None:
        for position in reversed(self.file_header_positions):
            if position < self.scroll:
                self.scroll_to(position)
                return

    def toggle_fold_current(self) -> None:
        """Fold or unfold the file at the top of the viewport."""
        idx = self.current_file_index()
        if idx is None:
            return
        filename = self.files[idx].filename
        if filename in self.collapsed:
            self.collapsed.discard(filename)
        else:
            self.collapsed.add(filename)
        self.recompute_visible_lines()
        self.scroll_to(self.file_header_positions[idx])

    def fold_all(self) -> None:
        self.collapsed.update(file_diff.filename for file_diff in self.files)
        self.recompute_visible_lines()

    def unfold_all(self) -> None:
        self.collapsed.clear()
        self.recompute_visible_lines()

    def visible_text(self) -> str:
        """Text of every visible line, newline-terminated, for the pager."""
        return "".join(f"{line.text}\n" for line in self.visible_lines)

    # -- commit log ----------------------------------------------------

    def open_commit_log(self, entries: list[CommitEntry]) -> None:
        self.commit_log = CommitLogState(entries=list(entries), selected=0)
        self.screen = COMMIT_LOG_SCREEN
        self.clear_search()

    def close_commit_log(self) -> None:
        self.screen = DIFF_SCREEN
        self.clear_search()

    # -- search --------------------------------------------------------

    def search_lines(self) -> list[str]:
        """Searchable text for the active screen, one entry per row."""
        if self.screen == COMMIT_LOG_SCREEN:
            return [entry.summary() for entry in self.commit_log.entries]
        return [line.text for line in self.visible_lines]

    def enter_search(self, forward: bool) -> None:
        self.input_mode = SEARCH_MODE
        self.search = SearchState(forward=forward)

    def clear_search(self) -> None:
        self.input_mode = NORMAL_MODE
        self.search = SearchState()

    def search_push(self, ch: str) -> None:
        self.search.query += ch
        recompute_matches(self.search, self.search_lines())

    def search_pop(self) -> None:
        self.search.query = self.search.query[:-1]
        recompute_matches(self.search, self.search_lines())

    def search_confirm(self) -> None:
        """Leave search mode and jump to the nearest match, if any."""
        self.input_mode = NORMAL_MODE
        recompute_matches(self.search, self.search_lines())
        if not self.search.active:
            return
        if self.screen == COMMIT_LOG_SCREEN:
            top = bottom = self.commit_log.selected
        else:
            top = self.scroll
            bottom = self.scroll + max(0, self.viewport_height - 1)
        self.search.current = nearest_match_index(self.search.matches, self.search.forward, top, bottom)
        self._reveal_match(self.search.matches[self.search.current])

    def search_next(self) -> None:
        match = step_match(self.search, 1)
        if match is not None:
            self._reveal_match(match)

    def search_prev(self) -> None:
        match = step_match(self.search, -1)
        if match is not None:
            self._reveal_match(match)

    def _reveal_match(self, match: SearchMatch) -> None:
        if self.screen == COMMIT_LOG_SCREEN:
            self.commit_log.selected = match.line
            return
        self.scroll_to(match.line - SEARCH_LEAD_LINES)
