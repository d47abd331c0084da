"""Low-level terminal input decoding.

Reads raw bytes from a file descriptor and translates them into normalized
key tokens: printable characters map to themselves, everything else to an
upper-case name such as ``ENTER``, ``PAGE_DOWN`` or ``CTRL_D``.
"""

from __future__ import annotations

import os
import select

ESC_SEQUENCE_TIMEOUT_MS = 25

_SINGLE_BYTE_KEYS = {
    b"\t": "TAB",
    b"\r": "ENTER",
    b"\n": "ENTER",
    b"\x08": "BACKSPACE",
    b"\x7f": "BACKSPACE",
}

_CSI_FINAL_KEYS = {
    b"A": "UP",
    b"B": "DOWN",
    b"C": "RIGHT",
    b"D": "LEFT",
    b"H": "HOME",
    b"F": "END",
    b"Z": "SHIFT_TAB",
}

_CSI_TILDE_KEYS = {
    "1": "HOME",
    "7": "HOME",
    "4": "END",
    "8": "END",
    "3": "DELETE",
    "5": "PAGE_UP",
    "6": "PAGE_DOWN",
}


def _utf8_sequence_length(lead: int) -> int:
    if lead >= 0xF0:
        return 4
    if lead >= 0xE0:
        return 3
    if lead >= 0xC0:
        return 2
    return 1


class KeyDecoder:
    """Stateful decoder bound to one input file descriptor.

    Bytes read ahead while disambiguating a lone ``ESC`` are kept in a
    per-decoder pending buffer and replayed on the next call.
    """

    def __init__(self, fd: int) -> None:
        self.fd = fd
        self._pending: list[bytes] = []

    def _read_ready_byte(self, timeout_ms: int) -> bytes | None:
        if self._pending:
            return self._pending.pop(0)
        ready, _, _ = select.select([self.fd], [], [], max(0.0, timeout_ms / 1000.0))
        if not ready:
            return None
        ch = os.read(self.fd, 1)
        if not ch:
            return None
        return ch

    def read_key(self, timeout_ms: int | None = None) -> str:
        """Return the next key token, or ``""`` if none arrived in time.

        ``timeout_ms=None`` blocks until a byte is available.
        """
        if self._pending:
            ch = self._pending.pop(0)
        else:
            if timeout_ms is not None:
                ready, _, _ = select.select([self.fd], [], [], max(0.0, timeout_ms / 1000.0))
                if not ready:
                    return ""
            ch = os.read(self.fd, 1)
            if not ch:
                raise EOFError("terminal input closed")

        if ch == b"\r":
            # Swallow the LF of a CRLF pair so one Enter yields one token.
            follow = self._read_ready_byte(0)
            if follow is not None and follow != b"\n":
                self._pending.insert(0, follow)
            return "ENTER"
        if ch in _SINGLE_BYTE_KEYS:
            return _SINGLE_BYTE_KEYS[ch]
        if ch == b"\x1b":
            return self._read_escape_sequence()

        code = ch[0]
        if 1 <= code <= 26:
            return f"CTRL_{chr(code + 64)}"
        if code < 32:
            return f"CTRL_{code}"

        needed = _utf8_sequence_length(code) - 1
        raw = ch
        while needed > 0:
            nxt = self._read_ready_byte(ESC_SEQUENCE_TIMEOUT_MS)
            if nxt is None:
                break
            raw += nxt
            needed -= 1
        return raw.decode("utf-8", errors="replace")

    def _read_escape_sequence(self) -> str:
        seq = self._read_ready_byte(ESC_SEQUENCE_TIMEOUT_MS)
        if seq is None:
            return "ESC"
        if seq not in {b"[", b"O"}:
            self._pending.insert(0, seq)
            return "ESC"

        final = self._read_ready_byte(ESC_SEQUENCE_TIMEOUT_MS)
        if final is None:
            return "ESC"
        if final in _CSI_FINAL_KEYS:
            return _CSI_FINAL_KEYS[final]
        if seq == b"O" or not final.isdigit():
            return "ESC"

        digits = final.decode("ascii")
        while True:
            part = self._read_ready_byte(ESC_SEQUENCE_TIMEOUT_MS)
            if part is None:
                return "ESC"
            if part == b"~":
                return _CSI_TILDE_KEYS.get(digits, "ESC")
            if part.isdigit() or part == b";":
                digits += part.decode("ascii")
                if len(digits) > 16:
                    return "ESC"
                continue
            # Modified cursor keys, e.g. ESC [ 1 ; 5 A.
            return _CSI_FINAL_KEYS.get(part, "ESC")
