"""Tests for frame composition and status/help rows."""

from __future__ import annotations

import os
import re
import unittest

from gitmonitor.ansi import ANSI_ESCAPE_RE
from gitmonitor.diff import parse_files
from gitmonitor.git.snapshot import CommitEntry, RepoSnapshot, empty_snapshot
from gitmonitor.runtime.render import RenderContext, Renderer, format_age, highlight_spans, status_text
from gitmonitor.view import ViewState

DIFF = """\
diff --git a/app.py b/app.py
--- a/app.py
+++ b/app.py
@@ -1,2 +1,4 @@
 import os
-print("old")
+print("new")
+value = 1
+other = 2
"""


def _snapshot(**overrides) -> RepoSnapshot:
    values = dict(
        branch="main",
        last_commit_hash="0123456789abcdef0123",
        last_commit_message="Initial import",
        staged_count=0,
        unstaged_count=1,
        staged_files=(),
        unstaged_files=tuple(parse_files(DIFF)),
        refreshed_at=100.0,
    )
    values.update(overrides)
    return RepoSnapshot(**values)


def _renderer(color: bool = False, columns: int = 60, lines: int = 12) -> Renderer:
    renderer = Renderer(
        out_fd=-1,
        color=color,
        get_terminal_size=lambda fallback: os.terminal_size((columns, lines)),
        clock=lambda: 105.0,
    )
    return renderer


def _frame(renderer: Renderer, state: ViewState, snapshot: RepoSnapshot, help_text: str = "q quit") -> str:
    height, width = renderer.measure()
    state.set_viewport(height, width)
    return renderer.compose(RenderContext.from_state(state, snapshot, help_text))


def _plain_rows(frame: str) -> list[str]:
    return ANSI_ESCAPE_RE.sub("", frame).split("\r\n")


class StatusTextTests(unittest.TestCase):
    def test_status_shows_branch_commit_counts_and_age(self) -> None:
        text = status_text(_snapshot(), now=105.0)

        self.assertEqual(text, " main | 0123456 Initial import | 0 staged, 1 unstaged  5s ago")

    def test_error_snapshot_shows_reason(self) -> None:
        self.assertEqual(status_text(empty_snapshot("git failed")), " (unknown) | error: git failed")

    def test_format_age(self) -> None:
        self.assertEqual(format_age(0.4), "just now")
        self.assertEqual(format_age(59), "59s ago")
        self.assertEqual(format_age(125), "2m ago")


class RendererTests(unittest.TestCase):
    def setUp(self) -> None:
        self.snapshot = _snapshot()
        self.state = ViewState()
        self.state.set_files(self.snapshot.unstaged_files)

    def test_measure_reserves_chrome_rows(self) -> None:
        self.assertEqual(_renderer(lines=12, columns=60).measure(), (9, 60))

    def test_frame_layout_without_color(self) -> None:
        rows = _plain_rows(_frame(_renderer(), self.state, self.snapshot))

        self.assertEqual(len(rows), 12)
        self.assertTrue(rows[0].startswith(" main | 0123456 Initial import"))
        self.assertEqual(rows[1].strip(), "Unstaged Changes (1 file)")
        self.assertTrue(rows[2].startswith("▾ app.py"))
        self.assertTrue(rows[2].rstrip().endswith("+3 -1"))
        self.assertEqual(rows[8].rstrip(), '-print("old")')
        self.assertEqual(rows[-1].strip(), "q quit")
        self.assertTrue(all(len(row) == 60 for row in rows[:-1]))

    def test_folded_header_uses_closed_arrow(self) -> None:
        self.state.fold_all()
        rows = _plain_rows(_frame(_renderer(), self.state, self.snapshot))

        self.assertTrue(rows[2].startswith("▸ app.py"))
        self.assertEqual(rows[3].strip(), "")

    def test_only_first_frame_and_invalidated_frames_clear_screen(self) -> None:
        renderer = _renderer()
        first = _frame(renderer, self.state, self.snapshot)
        second = _frame(renderer, self.state, self.snapshot)
        renderer.invalidate()
        third = _frame(renderer, self.state, self.snapshot)

        self.assertTrue(first.startswith("\033[H\033[J"))
        self.assertFalse(second.startswith("\033[H\033[J"))
        self.assertTrue(third.startswith("\033[H\033[J"))

    def test_search_bar_and_match_highlighting(self) -> None:
        self.state.enter_search(True)
        for ch in "print":
            self.state.search_push(ch)
        searching = _frame(_renderer(color=True), self.state, self.snapshot)
        self.assertIn("/print█", ANSI_ESCAPE_RE.sub("", searching))

        self.state.search_confirm()
        frame = _frame(_renderer(color=True), self.state, self.snapshot)
        # Current match is red, the other one yellow.
        self.assertEqual(len(re.findall(r"\x1b\[97;41mprint", frame)), 1)
        self.assertEqual(len(re.findall(r"\x1b\[30;43mprint", frame)), 1)
        self.assertIn('[1/2] "print"', ANSI_ESCAPE_RE.sub("", frame))

    def test_match_after_control_byte_is_highlighted_in_place(self) -> None:
        diff = "diff --git a/c.txt b/c.txt\n--- a/c.txt\n+++ b/c.txt\n@@ -0,0 +1 @@\n+a\x01foo\n"
        snapshot = _snapshot(unstaged_files=tuple(parse_files(diff)))
        self.state.set_files(snapshot.unstaged_files)
        self.state.enter_search(True)
        for ch in "foo":
            self.state.search_push(ch)
        self.state.search_confirm()

        rows = _frame(_renderer(), self.state, snapshot).split("\r\n")

        self.assertTrue(rows[7].startswith("+a\\x01\x1b[7mfoo\x1b[0m"))

    def test_highlight_spans_escapes_each_segment(self) -> None:
        self.assertEqual(
            highlight_spans("+a\x01foo\x02", [(3, 6, False)], "", False),
            "+a\\x01\x1b[4mfoo\x1b[0m\\x02",
        )

    def test_added_and_removed_rows_get_backgrounds(self) -> None:
        frame = _frame(_renderer(color=True), self.state, self.snapshot)

        self.assertIn("48;2;36;74;52", frame)
        self.assertIn("48;2;92;43;49", frame)

    def test_commit_log_screen_keeps_selection_visible(self) -> None:
        entries = [CommitEntry(f"{idx:07x}", f"message {idx}", "Ann", "1 day ago") for idx in range(30)]
        self.state.open_commit_log(entries)
        self.state.commit_log.selected = 20
        rows = _plain_rows(_frame(_renderer(), self.state, self.snapshot))

        self.assertEqual(rows[1].strip(), "Commit Log")
        self.assertTrue(rows[-2].startswith("▶ 0000014"))
        self.assertIn("message 20", rows[-2])

    def test_draw_writes_frame_to_descriptor(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            renderer = Renderer(
                out_fd=write_fd,
                color=False,
                get_terminal_size=lambda fallback: os.terminal_size((20, 4)),
            )
            renderer.measure()
            renderer.draw(RenderContext.from_state(self.state, self.snapshot, "help"))
            written = os.read(read_fd, 65536).decode("utf-8")
        finally:
            os.close(read_fd)
            os.close(write_fd)

        self.assertTrue(written.startswith("\033[H\033[J"))
        self.assertIn("app.py", written)


if __name__ == "__main__":
    unittest.main()
