"""Pygments syntax colouring for diff body lines.

Lexers are guessed from the file name and cached per name; formatters are
cached per style. Unknown styles fall back to ``monokai``.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache

from pygments import highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

DEFAULT_STYLE = "monokai"

_SGR_RE = re.compile(r"\x1b\[([0-9;]*)m")
ADDED_BG_SGR = "48;2;36;74;52"
REMOVED_BG_SGR = "48;2;92;43;49"


@lru_cache(maxsize=None)
def normalize_style(style: str) -> str:
    """Return ``style`` if Pygments knows it, else the default style."""
    try:
        get_style_by_name(style)
    except ClassNotFound:
        logger.info("unknown pygments style %r; using %s", style, DEFAULT_STYLE)
        return DEFAULT_STYLE
    return style


@lru_cache(maxsize=16)
def _formatter_for_style(style: str) -> Terminal256Formatter:
    return Terminal256Formatter(style=normalize_style(style))


@lru_cache(maxsize=256)
def lexer_for_filename(filename: str) -> Lexer:
    try:
        return get_lexer_for_filename(filename, stripnl=False, ensurenl=False)
    except ClassNotFound:
        return TextLexer(stripnl=False, ensurenl=False)


def colorize_code(code: str, filename: str, style: str = DEFAULT_STYLE) -> str:
    """Colour one line of source text as it would appear in ``filename``."""
    if not code:
        return code
    lexer = lexer_for_filename(filename)
    if isinstance(lexer, TextLexer):
        return code
    rendered = highlight(code, lexer, _formatter_for_style(style))
    return rendered.rstrip("\n")


def apply_line_background(line: str, bg_sgr: str) -> str:
    """Keep ``bg_sgr`` active across every SGR reset inside ``line``."""

    def _inject_bg(match: re.Match[str]) -> str:
        params = match.group(1)
        if params:
            return f"\033[{params};{bg_sgr}m"
        return f"\033[{bg_sgr}m"

    return f"\033[{bg_sgr}m{_SGR_RE.sub(_inject_bg, line)}"
