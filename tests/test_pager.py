from __future__ import annotations

import os
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from gitmonitor.runtime.pager import detect_pager, ensure_paging_always, open_pager


class EnsurePagingAlwaysTests(unittest.TestCase):
    def test_bare_delta_gets_paging_always(self) -> None:
        self.assertEqual(ensure_paging_always("delta"), "delta --paging=always")

    def test_delta_with_other_flags_gets_paging_always(self) -> None:
        self.assertEqual(
            ensure_paging_always("delta --dark --side-by-side"),
            "delta --dark --side-by-side --paging=always",
        )

    def test_explicit_paging_flag_is_respected(self) -> None:
        self.assertEqual(ensure_paging_always("delta --paging=never"), "delta --paging=never")

    def test_other_pagers_are_unchanged(self) -> None:
        self.assertEqual(ensure_paging_always("less"), "less")
        self.assertEqual(ensure_paging_always("deltaforce"), "deltaforce")

    def test_delta_by_path(self) -> None:
        self.assertEqual(ensure_paging_always("/usr/bin/delta"), "/usr/bin/delta --paging=always")

    def test_wrapped_delta_gets_paging_always(self) -> None:
        self.assertEqual(ensure_paging_always("env LESS=R delta"), "env LESS=R delta --paging=always")
        self.assertEqual(ensure_paging_always("nice delta --dark"), "nice delta --dark --paging=always")
        self.assertEqual(ensure_paging_always("nice delta --paging=never"), "nice delta --paging=never")


class DetectPagerTests(unittest.TestCase):
    def test_config_value_wins(self) -> None:
        with mock.patch.dict(os.environ, {"GIT_PAGER": "delta", "PAGER": "more"}):
            self.assertEqual(detect_pager("bat -p"), "bat -p")

    def test_git_pager_env_before_core_pager(self) -> None:
        with mock.patch.dict(os.environ, {"GIT_PAGER": "delta", "PAGER": "more"}), mock.patch(
            "gitmonitor.runtime.pager._git_core_pager", return_value="diff-so-fancy"
        ):
            self.assertEqual(detect_pager(None), "delta")

    def test_core_pager_before_pager_env(self) -> None:
        with mock.patch.dict(os.environ, {"PAGER": "more"}, clear=True), mock.patch(
            "gitmonitor.runtime.pager._git_core_pager", return_value="diff-so-fancy"
        ):
            self.assertEqual(detect_pager("  "), "diff-so-fancy")

    def test_pager_env_then_less(self) -> None:
        with mock.patch("gitmonitor.runtime.pager._git_core_pager", return_value=None):
            with mock.patch.dict(os.environ, {"PAGER": "more"}, clear=True):
                self.assertEqual(detect_pager(), "more")
            with mock.patch.dict(os.environ, {}, clear=True):
                self.assertEqual(detect_pager(), "less")


class OpenPagerTests(unittest.TestCase):
    def test_content_is_piped_to_shell_command(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "out.txt"
            error = open_pager(f"cat > '{target}'", "hello\nworld\n")
            self.assertIsNone(error)
            self.assertEqual(target.read_text(encoding="utf-8"), "hello\nworld\n")

    def test_pager_quitting_early_is_not_an_error(self) -> None:
        self.assertIsNone(open_pager("true", "x" * 1_000_000))

    def test_non_zero_exit_is_ignored(self) -> None:
        self.assertIsNone(open_pager("exit 3", "content"))

    def test_spawn_failure_returns_message(self) -> None:
        with mock.patch("gitmonitor.runtime.pager.subprocess.Popen", side_effect=OSError("no shell")):
            error = open_pager("less", "content")

        self.assertIn("no shell", error)


if __name__ == "__main__":
    unittest.main()
