"""Command-line front door for git-monitor.

Parses CLI options, resolves the repository, wires the producers, the
controller and the terminal together, and tears everything down on exit.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from .config import (
    load_commit_log_limit,
    load_debounce_ms,
    load_last_view,
    load_pager,
    load_style,
    save_last_view,
)
from .errors import GitMonitorError, NotARepositoryError
from .events import EventMultiplexer, RepoChanged
from .git import GitBackend, resolve_git_paths
from .input import InputReader, PauseGate
from .logging_utils import configure_logging
from .runtime import Controller, Renderer, TerminalController, detect_pager
from .watch import RepoWatcher

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-monitor",
        description="Live terminal dashboard of a git repository's staged and unstaged diffs.",
    )
    parser.add_argument("path", nargs="?", default=".", help="Repository path. Defaults to current directory.")
    parser.add_argument(
        "--debounce-ms",
        type=_positive_int,
        default=None,
        help="Quiet period before a burst of file changes triggers a refresh (default: 200).",
    )
    parser.add_argument("--style", default=None, help="Pygments style name for diff bodies.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output.")
    parser.add_argument(
        "--log-count",
        type=_positive_int,
        default=None,
        help="Number of commits shown in the commit log (default: 50).",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Write diagnostic logs to this file.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity.")
    return parser


def resolve_repository(path: Path) -> tuple[Path, Path]:
    """Return ``(work_tree_root, git_dir)`` for ``path``."""
    if not path.exists():
        raise NotARepositoryError(f"path not found: {path}")
    repo_root, git_dir = resolve_git_paths(path)
    if repo_root is None or git_dir is None:
        raise NotARepositoryError(f"not a git repository: {path}")
    return repo_root, git_dir


def _terminal_size(fd: int) -> tuple[int, int]:
    size = os.get_terminal_size(fd)
    return size.columns, size.lines


def run(args: argparse.Namespace) -> None:
    """Run the dashboard until the user quits."""
    repo_root, git_dir = resolve_repository(Path(args.path))
    debounce_ms = args.debounce_ms if args.debounce_ms is not None else load_debounce_ms()
    commit_log_limit = args.log_count if args.log_count is not None else load_commit_log_limit()
    style = args.style or load_style()
    pager_command = detect_pager(load_pager(), repo_root)
    logger.info("monitoring %s (debounce %dms, pager %r)", repo_root, debounce_ms, pager_command)

    stdin_fd = sys.stdin.fileno()
    stdout_fd = sys.stdout.fileno()
    terminal = TerminalController(stdin_fd, stdout_fd)

    mux = EventMultiplexer()
    gate = PauseGate()
    reader = InputReader(stdin_fd, mux.send, gate, measure_size=lambda: _terminal_size(stdout_fd))
    watcher = RepoWatcher(repo_root, git_dir, debounce_ms, emit=lambda: mux.send(RepoChanged()))
    controller = Controller(
        mux,
        GitBackend(repo_root, commit_log_limit=commit_log_limit),
        Renderer(stdout_fd, style=style, color=not args.no_color),
        terminal,
        gate,
        pager_command=pager_command,
        on_view_switched=save_last_view,
        initial_view=load_last_view(),
        input_alive=lambda: reader.alive,
    )

    try:
        with terminal.raw_mode():
            try:
                watcher.start()
            except OSError as exc:
                logger.error("cannot watch %s; live refresh disabled: %s", repo_root, exc)
            reader.start()
            controller.run()
    finally:
        mux.close()
        watcher.close()
        reader.stop()


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and launch the dashboard.

    Environment errors exit with status 1 and a one-line message.
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.log_file)
    try:
        run(args)
    except GitMonitorError as exc:
        logger.error("%s", exc)
        raise SystemExit(f"git-monitor: {exc}") from exc


if __name__ == "__main__":
    main()
