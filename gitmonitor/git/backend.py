"""Git command-line backend.

Every query shells out to ``git -C <repo>`` with a bounded timeout and raises
``GitQueryError`` on spawn failure, timeout, or non-zero exit. Callers decide
how to degrade; nothing here swallows errors except optional fields.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from ..diff import parse_files
from ..errors import GitQueryError
from .snapshot import CommitEntry, RepoSnapshot

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 10.0
DEFAULT_COMMIT_LOG_LIMIT = 50


def run_git(repo: Path, args: list[str], timeout_seconds: float = GIT_TIMEOUT_SECONDS) -> str:
    """Run one git subcommand and return its stdout as text."""
    command = ["git", "-C", str(repo), *args]
    try:
        proc = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise GitQueryError(f"failed to run git {' '.join(args)}: {exc}") from exc

    if proc.returncode != 0:
        raise GitQueryError(f"git {' '.join(args)} failed: {proc.stderr.strip()}")
    return proc.stdout


def resolve_git_paths(path: Path, timeout_seconds: float = 2.0) -> tuple[Path | None, Path | None]:
    """Resolve repository root and git-dir for ``path``.

    Uses ``git rev-parse --show-toplevel --git-dir`` and returns ``(None, None)``
    if git is unavailable, the directory is not in a repo, or probing fails.
    """
    try:
        out = run_git(path, ["rev-parse", "--show-toplevel", "--git-dir"], timeout_seconds)
    except GitQueryError:
        return None, None

    lines = [line.strip() for line in out.splitlines() if line.strip()]
    if len(lines) < 2:
        return None, None

    repo_root = Path(lines[0]).resolve()
    git_dir_raw = Path(lines[1])
    # --git-dir is relative to the cwd git ran in, which -C sets to ``path``.
    git_dir = git_dir_raw if git_dir_raw.is_absolute() else (path / git_dir_raw)
    return repo_root, git_dir.resolve()


def git_branch(repo: Path) -> str:
    """Return the branch name, ``detached:<sha>``, or ``(no branch)``."""
    try:
        branch = run_git(repo, ["rev-parse", "--abbrev-ref", "HEAD"]).strip()
    except GitQueryError:
        # Unborn branch: HEAD names a ref that has no commit yet.
        try:
            return run_git(repo, ["symbolic-ref", "--short", "HEAD"]).strip() or "(no branch)"
        except GitQueryError:
            return "(no branch)"
    if branch == "HEAD":
        sha = run_git(repo, ["rev-parse", "--short", "HEAD"]).strip()
        return f"detached:{sha}"
    return branch


def git_last_commit(repo: Path) -> tuple[str | None, str | None]:
    """Return ``(hash, subject)`` of HEAD, or ``(None, None)`` without commits."""
    try:
        out = run_git(repo, ["log", "-1", "--format=%H%n%s"])
    except GitQueryError:
        return None, None
    lines = out.strip().splitlines()
    if not lines:
        return None, None
    subject = lines[1] if len(lines) > 1 else None
    return lines[0], subject


def parse_status_counts(porcelain: str) -> tuple[int, int]:
    """Count staged and unstaged entries in ``git status --porcelain`` output."""
    staged = 0
    unstaged = 0
    for line in porcelain.splitlines():
        if len(line) < 2:
            continue
        if line[0] not in {" ", "?"}:
            staged += 1
        if line[1] != " ":
            unstaged += 1
    return staged, unstaged


def git_status_counts(repo: Path) -> tuple[int, int]:
    return parse_status_counts(run_git(repo, ["status", "--porcelain"]))


def git_diff(repo: Path, staged: bool) -> str:
    args = ["diff", "--no-color", "--no-ext-diff"]
    if staged:
        args.append("--cached")
    return run_git(repo, args)


def parse_log(output: str) -> list[CommitEntry]:
    """Parse NUL-separated ``hash, subject, author, relative date`` rows."""
    entries: list[CommitEntry] = []
    for line in output.splitlines():
        parts = line.split("\0", 3)
        if len(parts) != 4:
            continue
        entries.append(
            CommitEntry(
                hash=parts[0],
                message=parts[1],
                author=parts[2],
                date_relative=parts[3],
            )
        )
    return entries


def git_log(repo: Path, count: int = DEFAULT_COMMIT_LOG_LIMIT) -> list[CommitEntry]:
    """Fetch the ``count`` most recent commits."""
    out = run_git(repo, ["log", "--format=%h%x00%s%x00%an%x00%ar", f"-{max(1, count)}"])
    return parse_log(out)


def git_show(repo: Path, commit_hash: str) -> str:
    """Return full ``git show`` output for piping to an external pager."""
    return run_git(repo, ["show", "--no-color", commit_hash])


def query_snapshot(repo: Path) -> RepoSnapshot:
    """Build a complete snapshot by shelling out to git.

    Branch and last-commit lookups tolerate empty repositories. Status and
    both diffs are required: any failure there raises ``GitQueryError`` so the
    caller can keep showing its previous snapshot.
    """
    branch = git_branch(repo)
    commit_hash, commit_message = git_last_commit(repo)
    staged_count, unstaged_count = git_status_counts(repo)
    unstaged_raw = git_diff(repo, staged=False)
    staged_raw = git_diff(repo, staged=True)
    logger.debug(
        "queried %s: branch=%s staged=%d unstaged=%d",
        repo,
        branch,
        staged_count,
        unstaged_count,
    )
    return RepoSnapshot(
        branch=branch,
        last_commit_hash=commit_hash,
        last_commit_message=commit_message,
        staged_count=staged_count,
        unstaged_count=unstaged_count,
        staged_files=tuple(parse_files(staged_raw)),
        unstaged_files=tuple(parse_files(unstaged_raw)),
    )


class GitBackend:
    """Repository-bound facade used by the controller."""

    def __init__(self, repo_root: Path, commit_log_limit: int = DEFAULT_COMMIT_LOG_LIMIT) -> None:
        self.repo_root = repo_root
        self.commit_log_limit = commit_log_limit

    def snapshot(self) -> RepoSnapshot:
        return query_snapshot(self.repo_root)

    def commit_log(self) -> list[CommitEntry]:
        return git_log(self.repo_root, self.commit_log_limit)

    def show(self, commit_hash: str) -> str:
        return git_show(self.repo_root, commit_hash)
