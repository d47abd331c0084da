"""Single-threaded main loop for the dashboard.

The controller is the only consumer of the event multiplexer and the only
code that touches ``ViewState`` or the current ``RepoSnapshot``.

Coalescing: when a change signal arrives, every queued event is absorbed
first. Further change signals are dropped, and key/resize events are applied
in arrival order. Only then does the single refresh run. Events that cannot
be applied yet (after a quit or pager request) go to ``backlog``, which is
always consumed before the multiplexer.

Pager hand-off: RUNNING -> SUSPENDING (input reader asked to park, and
acknowledges) -> PAGED (terminal released, pager runs) -> RUNNING (terminal
re-acquired, queued input from the paused interval discarded, full redraw).
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from typing import Protocol

from ..errors import GitQueryError
from ..events import Event, EventMultiplexer, KeyPressed, QueuedEvent, RepoChanged, Resized
from ..git.snapshot import UNSTAGED, CommitEntry, RepoSnapshot, empty_snapshot
from ..input.reader import PauseGate
from ..view.state import ViewState
from .keymap import KeyContext, KeyDispatcher
from .pager import DEFAULT_PAGER, open_pager
from .render import RenderContext

logger = logging.getLogger(__name__)

RUNNING = "running"
SUSPENDING = "suspending"
PAGED = "paged"

# Upper bound on waiting for the input reader to park; longer than one poll.
PAUSE_GRACE_SECONDS = 0.15
# Redraw cadence while idle, so the refresh age in the status bar advances.
IDLE_REDRAW_SECONDS = 1.0


class Backend(Protocol):
    def snapshot(self) -> RepoSnapshot: ...

    def commit_log(self) -> list[CommitEntry]: ...

    def show(self, commit_hash: str) -> str: ...


class Controller:
    """Event loop tying the producers, view state, renderer and pager together."""

    def __init__(
        self,
        mux: EventMultiplexer,
        backend: Backend,
        renderer,
        terminal,
        gate: PauseGate,
        *,
        pager_command: str = DEFAULT_PAGER,
        launch_pager: Callable[[str, str], str | None] = open_pager,
        on_view_switched: Callable[[str], None] | None = None,
        initial_view: str = UNSTAGED,
        input_alive: Callable[[], bool] | None = None,
    ) -> None:
        self.mux = mux
        self.backend = backend
        self.renderer = renderer
        self.terminal = terminal
        self.gate = gate
        self.pager_command = pager_command
        self._launch_pager = launch_pager
        self._input_alive = input_alive

        self.state = ViewState(view=initial_view)
        self.snapshot: RepoSnapshot | None = None
        self.backlog: deque[QueuedEvent] = deque()
        self.phase = RUNNING

        self.refresh_count = 0
        self.coalesced_signals = 0
        self.discarded_inputs = 0

        self.dispatcher = KeyDispatcher(
            KeyContext(
                state=self.state,
                snapshot=self.current_snapshot,
                load_commit_log=backend.commit_log,
                show_commit=backend.show,
                on_view_switched=on_view_switched or (lambda _view: None),
            )
        )

    def current_snapshot(self) -> RepoSnapshot:
        if self.snapshot is None:
            return empty_snapshot("not loaded")
        return self.snapshot

    # -- main loop ------------------------------------------------------

    def run(self) -> None:
        """Load, draw, then process events until the user quits."""
        self.refresh()
        self.redraw()
        while not self.state.should_quit:
            queued = self._next_event()
            if queued is None:
                if self._input_alive is not None and not self._input_alive():
                    logger.warning("terminal input closed; exiting")
                    break
                self.redraw()
                continue
            self.handle(queued)
            if self.state.pager_content is not None:
                self.run_pager()
            if self.state.should_quit:
                break
            self.redraw()

    def _next_event(self) -> QueuedEvent | None:
        if self.backlog:
            return self.backlog.popleft()
        return self.mux.receive(timeout=IDLE_REDRAW_SECONDS)

    def handle(self, queued: QueuedEvent) -> None:
        event = queued.event
        if isinstance(event, RepoChanged):
            self.absorb_and_refresh()
        else:
            self.apply_input(event)

    def apply_input(self, event: Event) -> None:
        """Apply one key or resize event to the view state."""
        if isinstance(event, KeyPressed):
            handled = self.dispatcher.handle(event.key)
            if not handled:
                logger.debug("unbound key %r", event.key)
        elif isinstance(event, Resized):
            # The next redraw re-measures; stale rows must not survive it.
            self.renderer.invalidate()

    def _can_apply_input(self) -> bool:
        return not self.state.should_quit and self.state.pager_content is None

    def absorb_and_refresh(self) -> None:
        """Coalesce a change signal with everything already queued, then refresh once."""
        pending = list(self.backlog)
        self.backlog.clear()
        pending.extend(self.mux.drain())
        for queued in pending:
            if isinstance(queued.event, RepoChanged):
                self.coalesced_signals += 1
                continue
            if self._can_apply_input():
                self.apply_input(queued.event)
            else:
                self.backlog.append(queued)
        self.refresh()

    # -- repository state -----------------------------------------------

    def refresh(self) -> bool:
        """Replace the snapshot and re-derive view state.

        A failed query keeps the previous snapshot, or installs the error
        placeholder if there is none yet. Returns whether data was refreshed.
        """
        try:
            snapshot = self.backend.snapshot()
        except GitQueryError as exc:
            if self.snapshot is None:
                logger.warning("initial repository query failed: %s", exc)
                self.snapshot = empty_snapshot(str(exc))
                self.state.set_files(())
            else:
                logger.warning("refresh failed; keeping previous snapshot: %s", exc)
            return False
        self.snapshot = snapshot
        self.state.set_files(snapshot.files_for(self.state.view))
        self.refresh_count += 1
        return True

    def redraw(self) -> None:
        height, width = self.renderer.measure()
        self.state.set_viewport(height, width)
        context = RenderContext.from_state(self.state, self.current_snapshot(), self.dispatcher.help_text())
        self.renderer.draw(context)

    # -- pager hand-off -------------------------------------------------

    def run_pager(self) -> None:
        """Hand the terminal to the pager, then resume with a clean slate."""
        content = self.state.pager_content
        self.state.pager_content = None
        if content is None:
            return

        pause_mark = self.mux.last_seq
        self.phase = SUSPENDING
        self.gate.request_pause()
        if not self.gate.wait_parked(PAUSE_GRACE_SECONDS):
            logger.debug("input reader did not acknowledge pause within %.2fs", PAUSE_GRACE_SECONDS)
        try:
            self.phase = PAGED
            with self.terminal.suspended():
                self._launch_pager(self.pager_command, content)
        finally:
            self.renderer.invalidate()
            self._discard_paused_input(pause_mark)
            self.gate.release()
            self.phase = RUNNING

    def _discard_paused_input(self, pause_mark: int) -> None:
        """Drop input that arrived after ``pause_mark``; keep what came before."""
        changed = False
        for queued in self.mux.drain():
            if isinstance(queued.event, RepoChanged):
                changed = True
                continue
            if queued.seq <= pause_mark:
                self.backlog.append(queued)
            else:
                self.discarded_inputs += 1
                logger.debug("discarding input received while paged: %r", queued.event)
        if changed:
            self.refresh()
