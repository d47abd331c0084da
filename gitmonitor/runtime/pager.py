"""External pager launch helpers.

Runs the user's pager as a foreground child with content piped on stdin.
Callers are responsible for leaving TUI mode around ``open_pager``.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PAGER = "less"
PAGING_ALWAYS_FLAG = "--paging=always"


def _git_core_pager(repo_root: Path | None) -> str | None:
    args = ["git"]
    if repo_root is not None:
        args += ["-C", str(repo_root)]
    args += ["config", "core.pager"]
    try:
        proc = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
            timeout=2.0,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout.strip() or None


def detect_pager(config_pager: str | None = None, repo_root: Path | None = None) -> str:
    """Pick the pager command.

    Order: configured pager, ``$GIT_PAGER``, ``git config core.pager``,
    ``$PAGER``, then ``less``. Blank values are skipped.
    """
    if config_pager and config_pager.strip():
        return config_pager.strip()
    git_pager = os.environ.get("GIT_PAGER", "").strip()
    if git_pager:
        return git_pager
    core_pager = _git_core_pager(repo_root)
    if core_pager:
        return core_pager
    pager = os.environ.get("PAGER", "").strip()
    if pager:
        return pager
    return DEFAULT_PAGER


def ensure_paging_always(command: str) -> str:
    """Make delta page even when its output is short.

    Delta defaults to ``--paging=auto``, which exits immediately for small
    inputs and hands the terminal straight back.
    """
    try:
        words = shlex.split(command)
    except ValueError:
        words = command.split()
    # Wrappers such as ``env LESS=R delta`` or ``nice delta`` still run delta.
    if not any(os.path.basename(word) == "delta" for word in words):
        return command
    if any(word.startswith("--paging") for word in words):
        return command
    return f"{command} {PAGING_ALWAYS_FLAG}"


def open_pager(command: str, content: str) -> str | None:
    """Run ``command`` through the shell with ``content`` on its stdin.

    Blocks until the pager exits. Returns an error message instead of
    raising when the pager cannot be started; a pager that quits before
    reading everything is not an error.
    """
    command = ensure_paging_always(command)
    logger.info("opening pager: %s", command)
    try:
        proc = subprocess.Popen(command, shell=True, stdin=subprocess.PIPE)
    except OSError as exc:
        logger.warning("failed to launch pager %r: %s", command, exc)
        return f"Failed to launch pager: {exc}"

    assert proc.stdin is not None
    try:
        proc.stdin.write(content.encode("utf-8", errors="replace"))
    except (BrokenPipeError, OSError) as exc:
        logger.debug("pager closed its input early: %s", exc)
    finally:
        try:
            proc.stdin.close()
        except (BrokenPipeError, OSError):
            pass
    returncode = proc.wait()
    if returncode != 0:
        logger.info("pager exited with status %d", returncode)
    return None
