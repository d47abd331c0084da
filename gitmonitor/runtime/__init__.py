"""Main loop, key maps, pager hand-off, terminal control and rendering."""

from .controller import PAGED, RUNNING, SUSPENDING, Controller
from .keymap import KeyBinding, KeyContext, KeyDispatcher, KeyMap
from .pager import detect_pager, ensure_paging_always, open_pager
from .render import RenderContext, Renderer
from .terminal import TerminalController

__all__ = [
    "PAGED",
    "RUNNING",
    "SUSPENDING",
    "Controller",
    "KeyBinding",
    "KeyContext",
    "KeyDispatcher",
    "KeyMap",
    "RenderContext",
    "Renderer",
    "TerminalController",
    "detect_pager",
    "ensure_paging_always",
    "open_pager",
]
