"""Full-frame ANSI renderer for the dashboard.

The controller hands the renderer an immutable ``RenderContext`` per frame.
The only values flowing back are the geometry from ``measure()``, which the
controller applies to the view state before drawing.
"""

from __future__ import annotations

import os
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..ansi import clip_ansi_line, display_width, pad_ansi_line, sanitize_terminal_text
from ..diff import ADDED, CONTEXT, HEADER, HUNK, REMOVED, DiffLine
from ..git.snapshot import STAGED, CommitEntry, RepoSnapshot
from ..view.search import SearchMatch
from ..view.state import COMMIT_LOG_SCREEN, SEARCH_MODE, ViewState
from .syntax import ADDED_BG_SGR, DEFAULT_STYLE, REMOVED_BG_SGR, apply_line_background, colorize_code

# Status bar, title row and help bar.
CHROME_ROWS = 3

_RESET = "\033[0m"
_STATUS_SGR = "1;30;46"
_ERROR_SGR = "1;97;41"
_TITLE_SGR = "1;38;5;81"
_HEADER_SGR = "1;38;5;250"
_HUNK_SGR = "36"
_ADDED_FG_SGR = "32"
_REMOVED_FG_SGR = "31"
_FILE_HEADER_SGR = "1;48;5;236"
_MATCH_SGR = "30;43"
_CURRENT_MATCH_SGR = "97;41"
_SELECTED_SGR = "1;30;46"
_HELP_SGR = "2;38;5;250"
_SEARCH_BAR_SGR = "97;100"
_SEARCH_STATUS_SGR = "33"

_TITLES = {
    STAGED: "Staged Changes",
    COMMIT_LOG_SCREEN: "Commit Log",
}
_UNSTAGED_TITLE = "Unstaged Changes"


@dataclass(frozen=True)
class RenderContext:
    """Read-only copy of everything one frame needs."""

    snapshot: RepoSnapshot
    view: str
    screen: str
    input_mode: str
    visible_lines: tuple[DiffLine, ...]
    file_header_positions: tuple[int, ...]
    collapsed: frozenset[str]
    scroll: int
    search_query: str
    search_forward: bool
    matches: tuple[SearchMatch, ...]
    current_match: int
    commit_entries: tuple[CommitEntry, ...]
    commit_selected: int
    help_text: str

    @classmethod
    def from_state(cls, state: ViewState, snapshot: RepoSnapshot, help_text: str) -> RenderContext:
        return cls(
            snapshot=snapshot,
            view=state.view,
            screen=state.screen,
            input_mode=state.input_mode,
            visible_lines=tuple(state.visible_lines),
            file_header_positions=tuple(state.file_header_positions),
            collapsed=frozenset(state.collapsed),
            scroll=state.scroll,
            search_query=state.search.query,
            search_forward=state.search.forward,
            matches=tuple(state.search.matches),
            current_match=state.search.current,
            commit_entries=tuple(state.commit_log.entries),
            commit_selected=state.commit_log.selected,
            help_text=help_text,
        )


def format_age(seconds: float) -> str:
    elapsed = int(max(0.0, seconds))
    if elapsed == 0:
        return "just now"
    if elapsed < 60:
        return f"{elapsed}s ago"
    return f"{elapsed // 60}m ago"


def status_text(snapshot: RepoSnapshot, now: float | None = None) -> str:
    """Plain status bar text for ``snapshot``."""
    if snapshot.error:
        return f" {snapshot.branch} | error: {snapshot.error}"
    if now is None:
        now = time.monotonic()
    message = snapshot.last_commit_message or "(no commits)"
    return (
        f" {snapshot.branch} | {snapshot.short_hash} {message} | "
        f"{snapshot.staged_count} staged, {snapshot.unstaged_count} unstaged  "
        f"{format_age(now - snapshot.refreshed_at)}"
    )


def file_header_text(line: DiffLine, folded: bool) -> tuple[str, str]:
    """Return ``(left, right)`` parts of a file header row."""
    arrow = "▸" if folded else "▾"
    return f"{arrow} {line.filename}", f"+{line.added} -{line.removed}"


def highlight_spans(text: str, spans: list[tuple[int, int, bool]], base_sgr: str, color: bool) -> str:
    """Wrap character spans of raw ``text`` in match highlighting.

    ``spans`` holds ``(start, end, is_current)`` offsets into the unsanitized
    text, in ascending order; segments are sanitized after splitting.
    """
    match_sgr = _MATCH_SGR if color else "4"
    current_sgr = _CURRENT_MATCH_SGR if color else "7"
    base = f"\033[{base_sgr}m" if base_sgr else ""
    out: list[str] = [base]
    pos = 0
    for start, end, is_current in spans:
        if start < pos:
            continue
        out.append(sanitize_terminal_text(text[pos:start]))
        matched = sanitize_terminal_text(text[start:end])
        out.append(f"\033[{current_sgr if is_current else match_sgr}m{matched}{_RESET}{base}")
        pos = end
    out.append(sanitize_terminal_text(text[pos:]))
    return "".join(out)


class Renderer:
    """Write composed frames to a file descriptor."""

    def __init__(
        self,
        out_fd: int,
        style: str = DEFAULT_STYLE,
        color: bool = True,
        get_terminal_size: Callable[[tuple[int, int]], os.terminal_size] = shutil.get_terminal_size,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.out_fd = out_fd
        self.style = style
        self.color = color
        self._get_terminal_size = get_terminal_size
        self._clock = clock
        self._needs_clear = True
        self._size = (80, 24)

    def measure(self) -> tuple[int, int]:
        """Measure the terminal; return ``(viewport_height, content_width)``."""
        term = self._get_terminal_size((80, 24))
        self._size = (max(1, term.columns), max(1, term.lines))
        columns, lines = self._size
        return max(0, lines - CHROME_ROWS), columns

    def invalidate(self) -> None:
        """Force the next frame to clear the whole screen first."""
        self._needs_clear = True

    def draw(self, context: RenderContext) -> None:
        os.write(self.out_fd, self.compose(context).encode("utf-8", errors="replace"))

    def compose(self, context: RenderContext) -> str:
        columns, lines = self._size
        viewport_height = max(0, lines - CHROME_ROWS)

        out: list[str] = []
        if self._needs_clear:
            out.append("\033[H\033[J")
            self._needs_clear = False
        else:
            out.append("\033[H")

        rows = [self._status_row(context, columns), self._title_row(context, columns)]
        if context.screen == COMMIT_LOG_SCREEN:
            rows.extend(self._commit_log_rows(context, columns, viewport_height))
        else:
            rows.extend(self._diff_rows(context, columns, viewport_height))
        while len(rows) < CHROME_ROWS - 1 + viewport_height:
            rows.append(" " * columns)
        rows.append(self._help_row(context, columns))
        out.append("\r\n".join(rows[:lines]))
        return "".join(out)

    def _sgr(self, params: str, text: str) -> str:
        if not self.color or not params:
            return text
        return f"\033[{params}m{text}{_RESET}"

    # -- chrome ---------------------------------------------------------

    def _status_row(self, context: RenderContext, columns: int) -> str:
        text = sanitize_terminal_text(status_text(context.snapshot, self._clock()))
        sgr = _ERROR_SGR if context.snapshot.error else _STATUS_SGR
        if not self.color:
            return "\033[7m" + pad_ansi_line(text, columns) + _RESET
        return f"\033[{sgr}m{pad_ansi_line(text, columns)}{_RESET}"

    def _title_row(self, context: RenderContext, columns: int) -> str:
        key = COMMIT_LOG_SCREEN if context.screen == COMMIT_LOG_SCREEN else context.view
        title = _TITLES.get(key, _UNSTAGED_TITLE)
        if context.screen != COMMIT_LOG_SCREEN:
            files = len(context.file_header_positions)
            title = f"{title} ({files} file{'s' if files != 1 else ''})"
        return self._sgr(_TITLE_SGR, pad_ansi_line(f" {title}", columns))

    def _help_row(self, context: RenderContext, columns: int) -> str:
        if context.input_mode == SEARCH_MODE:
            prefix = "/" if context.search_forward else "?"
            text = f"{prefix}{context.search_query}█"
            return self._sgr(_SEARCH_BAR_SGR, pad_ansi_line(sanitize_terminal_text(text), columns))
        if context.search_query and context.matches:
            text = (
                f" [{context.current_match + 1}/{len(context.matches)}] "
                f"\"{context.search_query}\"  n/N next/prev  Esc clear"
            )
            return self._sgr(_SEARCH_STATUS_SGR, pad_ansi_line(sanitize_terminal_text(text), columns))
        if context.search_query:
            text = f" no matches for \"{context.search_query}\""
            return self._sgr(_SEARCH_STATUS_SGR, pad_ansi_line(sanitize_terminal_text(text), columns))
        return self._sgr(_HELP_SGR, pad_ansi_line(f" {context.help_text}", columns))

    # -- diff screen ----------------------------------------------------

    def _matches_by_line(self, context: RenderContext) -> dict[int, list[tuple[int, int, bool]]]:
        spans: dict[int, list[tuple[int, int, bool]]] = {}
        for idx, match in enumerate(context.matches):
            spans.setdefault(match.line, []).append((match.start, match.end, idx == context.current_match))
        return spans

    def _filename_at(self, context: RenderContext, line_index: int) -> str:
        filename = ""
        for position in context.file_header_positions:
            if position > line_index:
                break
            filename = context.visible_lines[position].filename
        return filename

    def _diff_rows(self, context: RenderContext, columns: int, height: int) -> list[str]:
        if not context.visible_lines:
            return [self._sgr(_HELP_SGR, pad_ansi_line("  No changes", columns))]
        spans = self._matches_by_line(context)
        filename = self._filename_at(context, context.scroll)
        rows: list[str] = []
        end = min(len(context.visible_lines), context.scroll + height)
        for index in range(context.scroll, end):
            line = context.visible_lines[index]
            if line.is_file_header:
                filename = line.filename
                rows.append(self._file_header_row(context, line, columns, spans.get(index)))
            else:
                rows.append(self._body_row(line, filename, columns, spans.get(index)))
        return rows

    def _file_header_row(
        self,
        context: RenderContext,
        line: DiffLine,
        columns: int,
        spans: list[tuple[int, int, bool]] | None,
    ) -> str:
        left, right = file_header_text(line, line.filename in context.collapsed)
        name = sanitize_terminal_text(left)
        if spans:
            # Match offsets index the filename; skip the arrow prefix.
            shifted = [(start + 2, end + 2, current) for start, end, current in spans]
            name = highlight_spans(left, shifted, _FILE_HEADER_SGR if self.color else "1", self.color)
        gap = max(1, columns - display_width(left) - display_width(right))
        if not self.color:
            return clip_ansi_line(f"{name}{' ' * gap}{right}", columns) + _RESET
        counts = (
            f"\033[{_FILE_HEADER_SGR};{_ADDED_FG_SGR}m+{line.added}"
            f" \033[{_FILE_HEADER_SGR};{_REMOVED_FG_SGR}m-{line.removed}"
        )
        return clip_ansi_line(f"\033[{_FILE_HEADER_SGR}m{name}\033[{_FILE_HEADER_SGR}m{' ' * gap}{counts}", columns) + _RESET

    def _body_row(
        self,
        line: DiffLine,
        filename: str,
        columns: int,
        spans: list[tuple[int, int, bool]] | None,
    ) -> str:
        text = sanitize_terminal_text(line.text)
        if not self.color:
            if spans:
                text = highlight_spans(line.text, spans, "", False)
            return pad_ansi_line(text, columns) + _RESET

        if spans:
            base = {ADDED: _ADDED_FG_SGR, REMOVED: _REMOVED_FG_SGR, HUNK: _HUNK_SGR, HEADER: _HEADER_SGR}.get(
                line.kind, ""
            )
            return pad_ansi_line(highlight_spans(line.text, spans, base, True), columns) + _RESET

        if line.kind == HEADER:
            return self._sgr(_HEADER_SGR, pad_ansi_line(text, columns))
        if line.kind == HUNK:
            return self._sgr(_HUNK_SGR, pad_ansi_line(text, columns))

        marker, code = text[:1], text[1:]
        body = marker + colorize_code(code, filename, self.style)
        if line.kind == ADDED:
            return pad_ansi_line(apply_line_background(body, ADDED_BG_SGR), columns) + _RESET
        if line.kind == REMOVED:
            return pad_ansi_line(apply_line_background(body, REMOVED_BG_SGR), columns) + _RESET
        if line.kind == CONTEXT:
            return pad_ansi_line(body, columns) + _RESET
        return pad_ansi_line(text, columns)

    # -- commit log -----------------------------------------------------

    def _commit_log_rows(self, context: RenderContext, columns: int, height: int) -> list[str]:
        entries = context.commit_entries
        if not entries:
            return [self._sgr(_HELP_SGR, pad_ansi_line("  No commits", columns))]
        selected = context.commit_selected
        top = selected - height + 1 if height and selected >= height else 0
        spans = self._matches_by_line(context)
        author_width = min(20, max(len(entry.author) for entry in entries))
        rows: list[str] = []
        for index in range(top, min(len(entries), top + height)):
            entry = entries[index]
            marker = "▶ " if index == selected else "  "
            message_width = max(10, columns - len(marker) - 9 - author_width - 4 - len(entry.date_relative))
            message = entry.message[:message_width]
            author = entry.author[:author_width]
            row = sanitize_terminal_text(
                f"{marker}{entry.hash:<8} {message:<{message_width}}  {author:<{author_width}}  {entry.date_relative}"
            )
            if index == selected:
                rows.append(self._sgr(_SELECTED_SGR, pad_ansi_line(row, columns)))
            elif index in spans and self.color:
                rows.append(pad_ansi_line(f"\033[4m{row}", columns) + _RESET)
            elif self.color:
                rows.append(
                    pad_ansi_line(
                        f"{marker}\033[1;33m{entry.hash:<8}{_RESET} {sanitize_terminal_text(message):<{message_width}}"
                        f"  \033[36m{sanitize_terminal_text(author):<{author_width}}{_RESET}"
                        f"  \033[2m{entry.date_relative}",
                        columns,
                    )
                    + _RESET
                )
            else:
                rows.append(pad_ansi_line(row, columns))
        return rows
