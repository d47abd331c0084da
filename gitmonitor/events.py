"""Event types and the many-producer, single-consumer event channel.

The input reader and the repository watcher each run on their own thread and
only ever ``send`` immutable events here. The controller is the single
consumer; all application state is mutated on its thread alone.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Union


@dataclass(frozen=True)
class KeyPressed:
    """One normalized key token from the input reader."""

    key: str


@dataclass(frozen=True)
class Resized:
    columns: int
    lines: int


@dataclass(frozen=True)
class RepoChanged:
    """Coalesced "something changed" trigger; carries no content."""


Event = Union[KeyPressed, Resized, RepoChanged]


@dataclass(frozen=True)
class QueuedEvent:
    """An event stamped with its arrival order at the channel."""

    seq: int
    event: Event


class EventMultiplexer:
    """Ordered channel merging every producer into one stream.

    Arrival order is preserved; each event gets a strictly increasing
    sequence number so the consumer can tell which events arrived after a
    given point (see ``last_seq``). ``send`` returns ``False`` after
    ``close()`` so producers can terminate.
    """

    def __init__(self) -> None:
        self._queue: Queue[QueuedEvent] = Queue()
        self._lock = threading.Lock()
        self._seq = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_seq(self) -> int:
        """Sequence number of the most recently sent event (0 if none)."""
        with self._lock:
            return self._seq

    def send(self, event: Event) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._seq += 1
            self._queue.put(QueuedEvent(seq=self._seq, event=event))
        return True

    def receive(self, timeout: float | None = None) -> QueuedEvent | None:
        """Block for the next event; ``None`` only when ``timeout`` expires."""
        try:
            return self._queue.get(timeout=timeout)
        except Empty:
            return None

    def drain(self) -> list[QueuedEvent]:
        """Remove and return every currently queued event without blocking."""
        out: list[QueuedEvent] = []
        while True:
            try:
                out.append(self._queue.get_nowait())
            except Empty:
                break
        return out

    def close(self) -> None:
        with self._lock:
            self._closed = True
