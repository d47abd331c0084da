"""Gitignore-aware path filtering backed by ``git check-ignore``.

Git evaluates every ignore source (nested ``.gitignore`` files,
``.git/info/exclude`` and the global excludes file) with its own
directory-aware matching, so results agree with ``git status``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

CHECK_IGNORE_TIMEOUT_SECONDS = 2.0


def _is_within(path: Path, root: Path) -> bool:
    """Return whether ``path`` is at or under ``root``."""
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


class GitIgnoreChecker:
    """Batch ignore lookups for paths inside one repository work tree."""

    def __init__(self, repo_root: Path, timeout_seconds: float = CHECK_IGNORE_TIMEOUT_SECONDS) -> None:
        self.repo_root = repo_root.resolve()
        self.timeout_seconds = timeout_seconds
        self._git_available = shutil.which("git") is not None

    def ignored(self, paths: Iterable[Path]) -> set[Path]:
        """Return the subset of ``paths`` git considers ignored.

        Tracked files are never reported, even when a pattern matches them.
        When git cannot answer, nothing is reported ignored so a change is
        never missed.
        """
        by_relative: dict[str, Path] = {}
        for path in paths:
            if not _is_within(path, self.repo_root) or path == self.repo_root:
                continue
            by_relative[path.relative_to(self.repo_root).as_posix()] = path
        if not by_relative or not self._git_available:
            return set()

        payload = "\0".join(by_relative) + "\0"
        try:
            proc = subprocess.run(
                ["git", "-C", str(self.repo_root), "check-ignore", "-z", "--stdin"],
                input=payload.encode("utf-8", errors="surrogateescape"),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=False,
                timeout=self.timeout_seconds,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("git check-ignore failed: %s", exc)
            return set()

        # Exit status 1 means "none ignored"; anything above is a real failure.
        if proc.returncode not in {0, 1}:
            logger.warning(
                "git check-ignore exited %d: %s",
                proc.returncode,
                proc.stderr.decode("utf-8", errors="replace").strip(),
            )
            return set()

        ignored: set[Path] = set()
        for raw in proc.stdout.split(b"\0"):
            if not raw:
                continue
            rel = raw.decode("utf-8", errors="surrogateescape")
            path = by_relative.get(rel)
            if path is not None:
                ignored.add(path)
        return ignored
