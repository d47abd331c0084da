"""Decide which raw filesystem events count toward a refresh.

Inside the git directory only a fixed allow-list of state-changing paths
matters; everything else there is lock files, object writes and logs. Work
tree paths count unless the repository's ignore rules exclude them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path

GIT_STATE_FILES = frozenset(
    {
        "index",
        "HEAD",
        "packed-refs",
        "MERGE_HEAD",
        "REBASE_HEAD",
        "CHERRY_PICK_HEAD",
        "REVERT_HEAD",
    }
)
GIT_STATE_PREFIXES = ("refs/", "rebase-merge/", "rebase-apply/")


def _relative_posix(path: Path, root: Path) -> str | None:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return None


def is_interesting_git_path(relative: str) -> bool:
    """Return whether a path relative to the git dir signals a state change."""
    return relative in GIT_STATE_FILES or relative.startswith(GIT_STATE_PREFIXES)


class PathClassifier:
    """Classify batches of absolute event paths for one repository.

    ``ignored`` receives every candidate work-tree path in a batch and returns
    the ignored subset, letting one ``git check-ignore`` call cover a whole
    debounce window.
    """

    def __init__(
        self,
        repo_root: Path,
        git_dir: Path,
        ignored: Callable[[list[Path]], set[Path]],
    ) -> None:
        self.repo_root = repo_root
        self.git_dir = git_dir
        self._ignored = ignored

    def relevant(self, paths: Iterable[Path]) -> list[Path]:
        """Return the paths in ``paths`` that should trigger a refresh."""
        relevant: list[Path] = []
        candidates: list[Path] = []
        for path in dict.fromkeys(paths):
            git_relative = _relative_posix(path, self.git_dir)
            if git_relative is not None:
                if is_interesting_git_path(git_relative):
                    relevant.append(path)
                continue
            work_relative = _relative_posix(path, self.repo_root)
            if work_relative is None or work_relative == ".":
                continue
            # A linked worktree keeps a ".git" file outside the real git dir.
            if work_relative == ".git" or work_relative.startswith(".git/"):
                continue
            candidates.append(path)

        if candidates:
            ignored = self._ignored(candidates)
            relevant.extend(path for path in candidates if path not in ignored)
        return relevant
