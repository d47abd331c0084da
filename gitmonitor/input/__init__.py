"""Terminal input: key decoding and the background input reader."""

from .keys import ESC_SEQUENCE_TIMEOUT_MS, KeyDecoder
from .reader import POLL_TIMEOUT_MS, InputReader, PauseGate

__all__ = [
    "ESC_SEQUENCE_TIMEOUT_MS",
    "POLL_TIMEOUT_MS",
    "InputReader",
    "KeyDecoder",
    "PauseGate",
]
