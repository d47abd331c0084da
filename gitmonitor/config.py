"""Persistent JSON config helpers.

Stores the pager override, syntax style, commit-log size, debounce interval
and the last diff view. All access is defensive: malformed or missing config
falls back to defaults, and write failures are ignored.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from platformdirs import user_config_dir

from .git.backend import DEFAULT_COMMIT_LOG_LIMIT
from .git.snapshot import STAGED, UNSTAGED

logger = logging.getLogger(__name__)

APP_NAME = "git-monitor"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

DEFAULT_DEBOUNCE_MS = 200
DEFAULT_STYLE = "monokai"


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable config %s: %s", CONFIG_PATH, exc)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON."""
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        logger.info("could not write config %s: %s", CONFIG_PATH, exc)


def _load_positive_int(key: str, default: int) -> int:
    value = load_config().get(key)
    # bool is an int subclass; ``true`` is not a count.
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return default
    return value


def _load_string(key: str) -> str | None:
    value = load_config().get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def load_debounce_ms() -> int:
    return _load_positive_int("debounce_ms", DEFAULT_DEBOUNCE_MS)


def load_commit_log_limit() -> int:
    return _load_positive_int("commit_log_limit", DEFAULT_COMMIT_LOG_LIMIT)


def load_style() -> str:
    return _load_string("style") or DEFAULT_STYLE


def load_pager() -> str | None:
    """Configured pager command, or ``None`` to use detection."""
    return _load_string("pager")


def load_last_view() -> str:
    """Return the persisted diff view; anything unrecognised means unstaged."""
    value = load_config().get("last_view")
    return STAGED if value == STAGED else UNSTAGED


def save_last_view(view: str) -> None:
    if view not in {STAGED, UNSTAGED}:
        return
    config = load_config()
    config["last_view"] = view
    save_config(config)
