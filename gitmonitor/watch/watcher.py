"""Recursive repository watcher built on watchdog.

Owns a watchdog observer plus a ``ChangeDebouncer``. The caller owns the
watcher's lifetime: ``start()`` begins watching and ``close()`` (or leaving
the ``with`` block) stops both threads. A dead observer thread is restarted
from the debounce worker's idle hook.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .classify import PathClassifier
from .debounce import ChangeDebouncer
from .ignore import GitIgnoreChecker

logger = logging.getLogger(__name__)

WATCHED_EVENT_TYPES = frozenset({"created", "modified", "moved", "deleted"})
OBSERVER_JOIN_SECONDS = 1.0


class _RepoEventHandler(FileSystemEventHandler):
    """Forward relevant raw event paths to the debouncer."""

    def __init__(self, submit: Callable[[Path], None]) -> None:
        self._submit = submit

    def on_any_event(self, event: FileSystemEvent) -> None:  # type: ignore[override]
        if event.event_type not in WATCHED_EVENT_TYPES:
            return
        # Directory mtime bumps duplicate the child event that caused them.
        if event.is_directory and event.event_type == "modified":
            return
        try:
            self._submit(Path(os.fsdecode(event.src_path)))
            dest_path = getattr(event, "dest_path", "")
            if dest_path:
                self._submit(Path(os.fsdecode(dest_path)))
        except (OSError, ValueError) as exc:
            logger.warning("dropping filesystem event %r: %s", event, exc)


class RepoWatcher:
    """Emit one coalesced change signal per burst of relevant filesystem events."""

    def __init__(
        self,
        repo_root: Path,
        git_dir: Path,
        debounce_ms: int,
        emit: Callable[[], bool],
        *,
        ignored: Callable[[list[Path]], set[Path]] | None = None,
        observer_factory: Callable[[], object] = Observer,
    ) -> None:
        self.repo_root = repo_root.resolve()
        self.git_dir = git_dir.resolve()
        if ignored is None:
            ignored = GitIgnoreChecker(self.repo_root).ignored
        self.classifier = PathClassifier(self.repo_root, self.git_dir, ignored)
        self.debouncer = ChangeDebouncer(
            self.classifier.relevant,
            emit,
            debounce_seconds=max(0, debounce_ms) / 1000.0,
            on_idle=self._check_observer,
        )
        self._observer_factory = observer_factory
        self._observer = None
        self._handler = _RepoEventHandler(self.debouncer.submit)
        self._lock = threading.Lock()
        self._closed = False

    def __enter__(self) -> RepoWatcher:
        self.start()
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()

    def _watch_roots(self) -> list[Path]:
        roots = [self.repo_root]
        try:
            self.git_dir.relative_to(self.repo_root)
        except ValueError:
            roots.append(self.git_dir)
        return roots

    def _start_observer(self) -> None:
        observer = self._observer_factory()
        for root in self._watch_roots():
            observer.schedule(self._handler, str(root), recursive=True)
        observer.start()
        self._observer = observer
        logger.debug("watching %s", ", ".join(str(root) for root in self._watch_roots()))

    def start(self) -> None:
        """Start the observer and debounce threads.

        Errors scheduling the initial watch propagate to the caller.
        """
        with self._lock:
            self._start_observer()
        self.debouncer.start()

    def _check_observer(self) -> None:
        """Restart the observer if its thread died while we still own it."""
        with self._lock:
            if self._closed or self._observer is None or self._observer.is_alive():
                return
            logger.warning("filesystem observer stopped unexpectedly; restarting")
            try:
                self._start_observer()
            except OSError as exc:
                logger.warning("failed to restart filesystem observer: %s", exc)

    def close(self) -> None:
        """Stop watching. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            observer = self._observer
            self._observer = None
        self.debouncer.close()
        if observer is not None:
            try:
                observer.stop()
                observer.join(timeout=OBSERVER_JOIN_SECONDS)
            except RuntimeError as exc:
                logger.warning("filesystem observer shutdown failed: %s", exc)
