"""Tests for argument parsing, repository resolution and startup errors."""

from __future__ import annotations

import argparse
import logging
import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from gitmonitor.cli import _positive_int, build_parser, main, resolve_repository
from gitmonitor.errors import NotARepositoryError
from gitmonitor.logging_utils import configure_logging, level_for_verbosity


class ParserTests(unittest.TestCase):
    def test_defaults(self) -> None:
        args = build_parser().parse_args([])

        self.assertEqual(args.path, ".")
        self.assertIsNone(args.debounce_ms)
        self.assertIsNone(args.style)
        self.assertFalse(args.no_color)
        self.assertIsNone(args.log_count)
        self.assertEqual(args.verbose, 0)

    def test_options(self) -> None:
        args = build_parser().parse_args(
            ["repo", "--debounce-ms", "50", "--style", "native", "--no-color", "--log-count", "5", "-vv"]
        )

        self.assertEqual(args.path, "repo")
        self.assertEqual(args.debounce_ms, 50)
        self.assertEqual(args.style, "native")
        self.assertTrue(args.no_color)
        self.assertEqual(args.log_count, 5)
        self.assertEqual(args.verbose, 2)

    def test_positive_int_rejects_zero_and_text(self) -> None:
        self.assertEqual(_positive_int("3"), 3)
        with self.assertRaises(argparse.ArgumentTypeError):
            _positive_int("0")
        with self.assertRaises(argparse.ArgumentTypeError):
            _positive_int("soon")


class ResolveRepositoryTests(unittest.TestCase):
    def test_missing_path(self) -> None:
        with self.assertRaisesRegex(NotARepositoryError, "path not found"):
            resolve_repository(Path("/definitely/not/here"))

    @unittest.skipIf(shutil.which("git") is None, "git is required")
    def test_plain_directory_is_not_a_repository(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaisesRegex(NotARepositoryError, "not a git repository"):
                resolve_repository(Path(tmp))

    @unittest.skipIf(shutil.which("git") is None, "git is required")
    def test_repository_root_and_git_dir(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            subprocess.run(["git", "init", "-q"], cwd=root, check=True)

            self.assertEqual(resolve_repository(root), (root, root / ".git"))


class MainTests(unittest.TestCase):
    def test_environment_error_exits_with_message(self) -> None:
        with mock.patch("gitmonitor.cli.configure_logging"):
            with self.assertRaises(SystemExit) as ctx:
                main(["/definitely/not/here"])

        self.assertEqual(str(ctx.exception.code), "git-monitor: path not found: /definitely/not/here")

    def test_invalid_option_is_a_usage_error(self) -> None:
        with mock.patch("sys.stderr"):
            with self.assertRaises(SystemExit) as ctx:
                build_parser().parse_args(["--debounce-ms", "0"])

        self.assertEqual(ctx.exception.code, 2)


class LoggingTests(unittest.TestCase):
    def test_verbosity_levels(self) -> None:
        self.assertEqual(level_for_verbosity(0), logging.WARNING)
        self.assertEqual(level_for_verbosity(1), logging.INFO)
        self.assertEqual(level_for_verbosity(5), logging.DEBUG)

    def test_configure_logging_writes_to_file(self) -> None:
        root = logging.getLogger()
        before = list(root.handlers)
        level = root.level
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "logs" / "run.log"
            try:
                self.assertEqual(configure_logging(1, path), path)
                logging.getLogger("gitmonitor.test").info("hello from test")
                for handler in root.handlers:
                    handler.flush()
                self.assertIn("hello from test", path.read_text(encoding="utf-8"))
            finally:
                for handler in root.handlers[:]:
                    if handler not in before:
                        root.removeHandler(handler)
                        handler.close()
                root.setLevel(level)


if __name__ == "__main__":
    unittest.main()
