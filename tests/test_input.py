"""Regression tests for raw-key decoding and the background input reader.

Covers ESC timing, arrow/tilde sequences, control-key token mapping and the
pause handshake used while the pager owns the terminal.
"""

from __future__ import annotations

import os
import threading
import time
import unittest

from gitmonitor.events import KeyPressed, Resized
from gitmonitor.input import InputReader, KeyDecoder, PauseGate


def _decode(data: bytes, count: int = 1) -> list[str]:
    read_fd, write_fd = os.pipe()
    try:
        os.write(write_fd, data)
        decoder = KeyDecoder(read_fd)
        return [decoder.read_key(timeout_ms=20) for _ in range(count)]
    finally:
        os.close(read_fd)
        os.close(write_fd)


class KeyDecoderTests(unittest.TestCase):
    def test_single_escape_returns_esc_without_second_keypress(self) -> None:
        started = time.monotonic()
        keys = _decode(b"\x1b")
        elapsed = time.monotonic() - started

        self.assertEqual(keys, ["ESC"])
        self.assertLess(elapsed, 0.2)

    def test_escape_does_not_swallow_following_printable_key(self) -> None:
        self.assertEqual(_decode(b"\x1ba", 2), ["ESC", "a"])

    def test_arrow_and_ss3_sequences(self) -> None:
        self.assertEqual(_decode(b"\x1b[A\x1b[B\x1bOC\x1b[D", 4), ["UP", "DOWN", "RIGHT", "LEFT"])

    def test_tilde_sequences(self) -> None:
        self.assertEqual(_decode(b"\x1b[5~\x1b[6~\x1b[1~\x1b[4~", 4), ["PAGE_UP", "PAGE_DOWN", "HOME", "END"])

    def test_modified_cursor_key_maps_to_base_key(self) -> None:
        self.assertEqual(_decode(b"\x1b[1;5A"), ["UP"])

    def test_control_keys(self) -> None:
        self.assertEqual(_decode(b"\x04\x15\x06\x02\x03", 5), ["CTRL_D", "CTRL_U", "CTRL_F", "CTRL_B", "CTRL_C"])

    def test_tab_enter_backspace(self) -> None:
        self.assertEqual(_decode(b"\t\r\x7f", 3), ["TAB", "ENTER", "BACKSPACE"])

    def test_crlf_is_one_enter(self) -> None:
        self.assertEqual(_decode(b"\r\nq", 2), ["ENTER", "q"])

    def test_utf8_character_is_assembled(self) -> None:
        self.assertEqual(_decode("é".encode("utf-8")), ["é"])

    def test_timeout_returns_empty_string(self) -> None:
        self.assertEqual(_decode(b""), [""])

    def test_end_of_input_raises_eof(self) -> None:
        read_fd, write_fd = os.pipe()
        os.close(write_fd)
        try:
            with self.assertRaises(EOFError):
                KeyDecoder(read_fd).read_key(timeout_ms=20)
        finally:
            os.close(read_fd)


class _Collector:
    def __init__(self) -> None:
        self.events: list[object] = []
        self.changed = threading.Condition()
        self.open = True

    def send(self, event) -> bool:
        with self.changed:
            if not self.open:
                return False
            self.events.append(event)
            self.changed.notify_all()
        return True

    def wait_for(self, count: int, timeout: float = 2.0) -> bool:
        with self.changed:
            return self.changed.wait_for(lambda: len(self.events) >= count, timeout=timeout)


class PauseGateTests(unittest.TestCase):
    def test_new_pause_request_clears_previous_acknowledgement(self) -> None:
        gate = PauseGate()
        gate.request_pause()
        gate.mark_parked()
        gate.release()

        gate.request_pause()

        self.assertTrue(gate.pause_requested)
        self.assertFalse(gate.parked)
        self.assertFalse(gate.wait_parked(0))


class InputReaderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.read_fd, self.write_fd = os.pipe()
        self.collector = _Collector()
        self.gate = PauseGate()
        self.reader: InputReader | None = None

    def tearDown(self) -> None:
        if self.reader is not None:
            self.reader.stop()
        for fd in (self.read_fd, self.write_fd):
            try:
                os.close(fd)
            except OSError:
                pass

    def _start(self, **kwargs) -> InputReader:
        self.reader = InputReader(self.read_fd, self.collector.send, self.gate, poll_timeout_ms=20, **kwargs)
        self.reader.start()
        return self.reader

    def test_keys_are_forwarded_in_order(self) -> None:
        self._start()
        os.write(self.write_fd, b"jk")

        self.assertTrue(self.collector.wait_for(2))
        self.assertEqual(self.collector.events, [KeyPressed("j"), KeyPressed("k")])

    def test_paused_reader_parks_and_leaves_input_unread(self) -> None:
        self._start()
        self.gate.request_pause()
        self.assertTrue(self.gate.wait_parked(1.0))

        os.write(self.write_fd, b"x")
        time.sleep(0.2)
        self.assertEqual(self.collector.events, [])

        self.gate.release()
        self.assertTrue(self.collector.wait_for(1))
        self.assertEqual(self.collector.events, [KeyPressed("x")])
        self.assertFalse(self.gate.parked)

    def test_stale_acknowledgement_does_not_satisfy_a_new_pause(self) -> None:
        self._start()
        self.gate.request_pause()
        self.assertTrue(self.gate.wait_parked(1.0))

        acks: list[bool] = []
        resume = self.gate.mark_running

        def pause_again_while_resuming() -> None:
            # Controller asks for the terminal again just as the reader wakes up.
            if not acks:
                self.gate.request_pause()
                acks.append(self.gate.wait_parked(0))
                os.write(self.write_fd, b"q")
            resume()

        self.gate.mark_running = pause_again_while_resuming
        self.gate.release()

        deadline = time.monotonic() + 2.0
        while not acks and time.monotonic() < deadline:
            time.sleep(0.01)
        self.assertEqual(acks, [False])
        self.assertTrue(self.gate.wait_parked(1.0))
        time.sleep(0.2)
        self.assertEqual(self.collector.events, [])

    def test_size_change_becomes_resize_event(self) -> None:
        sizes = [(80, 24)]
        self._start(measure_size=lambda: sizes[-1])
        sizes.append((120, 40))

        self.assertTrue(self.collector.wait_for(1))
        self.assertEqual(self.collector.events[0], Resized(columns=120, lines=40))

    def test_reader_exits_when_destination_closes(self) -> None:
        reader = self._start()
        self.collector.open = False
        os.write(self.write_fd, b"q")

        deadline = time.monotonic() + 2.0
        while reader.alive and time.monotonic() < deadline:
            time.sleep(0.01)
        self.assertFalse(reader.alive)

    def test_reader_exits_quietly_on_end_of_input(self) -> None:
        reader = self._start()
        os.close(self.write_fd)
        self.write_fd = -1

        deadline = time.monotonic() + 2.0
        while reader.alive and time.monotonic() < deadline:
            time.sleep(0.01)
        self.assertFalse(reader.alive)
        self.assertEqual(self.collector.events, [])


if __name__ == "__main__":
    unittest.main()
