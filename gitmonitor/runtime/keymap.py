"""Key dispatch for the diff and commit-log screens.

Each screen owns a ``KeyMap`` built once from ``KeyBinding`` entries; search
mode is handled separately because it consumes every printable key. Handlers
only mutate ``ViewState``. Anything that needs the terminal (the pager) is
requested by setting ``state.pager_content`` for the controller to act on.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..errors import GitQueryError
from ..git.snapshot import CommitEntry, RepoSnapshot
from ..view.state import COMMIT_LOG_SCREEN, SEARCH_MODE, ViewState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyBinding:
    """One or more key tokens bound to an action, with an optional help label."""

    keys: tuple[str, ...]
    action: Callable[[], None]
    label: str = ""


class KeyMap:
    """Exact-match dispatch table for one screen."""

    def __init__(self, *bindings: KeyBinding) -> None:
        self._actions: dict[str, Callable[[], None]] = {}
        self._labels: list[str] = []
        for binding in bindings:
            for key in binding.keys:
                self._actions[key] = binding.action
            if binding.label:
                self._labels.append(binding.label)

    def dispatch(self, key: str) -> bool:
        """Run the action bound to ``key``; ``False`` if nothing is bound."""
        action = self._actions.get(key)
        if action is None:
            return False
        action()
        return True

    def help_text(self) -> str:
        return "  ".join(self._labels)


@dataclass(frozen=True)
class KeyContext:
    """View state plus the controller operations key handlers may call."""

    state: ViewState
    snapshot: Callable[[], RepoSnapshot]
    load_commit_log: Callable[[], list[CommitEntry]]
    show_commit: Callable[[str], str]
    on_view_switched: Callable[[str], None] = lambda _view: None


def is_printable_key(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


class KeyDispatcher:
    """Route one key token by input mode and active screen."""

    def __init__(self, context: KeyContext) -> None:
        self.context = context
        self.diff_keys = self._build_diff_keys()
        self.commit_log_keys = self._build_commit_log_keys()

    @property
    def state(self) -> ViewState:
        return self.context.state

    def handle(self, key: str) -> bool:
        """Apply ``key`` to the view state; ``True`` when it was recognised."""
        if key == "CTRL_C":
            self.state.should_quit = True
            return True
        if self.state.input_mode == SEARCH_MODE:
            return self._handle_search_key(key)
        if self.state.screen == COMMIT_LOG_SCREEN:
            return self.commit_log_keys.dispatch(key)
        return self.diff_keys.dispatch(key)

    def help_text(self) -> str:
        if self.state.screen == COMMIT_LOG_SCREEN:
            return self.commit_log_keys.help_text()
        return self.diff_keys.help_text()

    def _handle_search_key(self, key: str) -> bool:
        state = self.state
        if key == "ENTER":
            state.search_confirm()
        elif key == "ESC":
            state.clear_search()
        elif key == "BACKSPACE":
            state.search_pop()
        elif is_printable_key(key):
            state.search_push(key)
        else:
            return False
        return True

    # -- diff screen ---------------------------------------------------

    def _quit(self) -> None:
        self.state.should_quit = True

    def _switch_view(self) -> None:
        self.state.switch_view(self.context.snapshot())
        self.context.on_view_switched(self.state.view)

    def _page_visible_lines(self) -> None:
        if self.state.visible_lines:
            self.state.pager_content = self.state.visible_text()

    def _open_commit_log(self) -> None:
        try:
            entries = self.context.load_commit_log()
        except GitQueryError as exc:
            logger.warning("commit log unavailable: %s", exc)
            return
        self.state.open_commit_log(entries)

    def _build_diff_keys(self) -> KeyMap:
        state = self.state
        return KeyMap(
            KeyBinding(("q",), self._quit, "q quit"),
            KeyBinding(("TAB",), self._switch_view, "Tab staged/unstaged"),
            KeyBinding(("j", "DOWN"), lambda: state.scroll_by(1), "j/k scroll"),
            KeyBinding(("k", "UP"), lambda: state.scroll_by(-1)),
            KeyBinding(("g", "HOME"), state.scroll_to_top),
            KeyBinding(("G", "END"), state.scroll_to_bottom),
            KeyBinding(("CTRL_D",), lambda: state.scroll_by(state.half_page())),
            KeyBinding(("CTRL_U",), lambda: state.scroll_by(-state.half_page())),
            KeyBinding(("CTRL_F", "PAGE_DOWN"), lambda: state.scroll_by(state.page())),
            KeyBinding(("CTRL_B", "PAGE_UP"), lambda: state.scroll_by(-state.page())),
            KeyBinding(("]",), state.next_file, "]/[ file"),
            KeyBinding(("[",), state.prev_file),
            KeyBinding((" ",), state.toggle_fold_current, "Space fold"),
            KeyBinding(("C",), state.fold_all, "C/E fold all/none"),
            KeyBinding(("E",), state.unfold_all),
            KeyBinding(("/",), lambda: state.enter_search(True), "/ search"),
            KeyBinding(("?",), lambda: state.enter_search(False)),
            KeyBinding(("n",), state.search_next, "n/N match"),
            KeyBinding(("N",), state.search_prev),
            KeyBinding(("ESC",), state.clear_search),
            KeyBinding(("d",), self._page_visible_lines, "d pager"),
            KeyBinding(("l",), self._open_commit_log, "l log"),
        )

    # -- commit log screen ---------------------------------------------

    def _show_selected_commit(self) -> None:
        entry = self.state.commit_log.selected_entry()
        if entry is None:
            return
        try:
            self.state.pager_content = self.context.show_commit(entry.hash)
        except GitQueryError as exc:
            logger.warning("cannot show commit %s: %s", entry.hash, exc)

    def _build_commit_log_keys(self) -> KeyMap:
        state = self.state
        return KeyMap(
            KeyBinding(("q", "ESC"), state.close_commit_log, "q back"),
            KeyBinding(("j", "DOWN"), lambda: state.commit_log.move(1), "j/k move"),
            KeyBinding(("k", "UP"), lambda: state.commit_log.move(-1)),
            KeyBinding(("g", "HOME"), lambda: state.commit_log.move(-len(state.commit_log.entries))),
            KeyBinding(("G", "END"), lambda: state.commit_log.select_last()),
            KeyBinding(("ENTER", "d"), self._show_selected_commit, "Enter show"),
            KeyBinding(("/",), lambda: state.enter_search(True), "/ search"),
            KeyBinding(("?",), lambda: state.enter_search(False)),
            KeyBinding(("n",), state.search_next, "n/N match"),
            KeyBinding(("N",), state.search_prev),
        )
