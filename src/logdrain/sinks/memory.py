from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Tuple

from logdrain.sinks import Sink, SinkError


class MemorySink(Sink):
    def __init__(self, destination: str = ""):
        self.destination = destination
        self.closed = False
        self._entries: List[Tuple[datetime, str]] = []
        self._lock = threading.Lock()

    def append(self, timestamp: datetime, message: str) -> None:
        with self._lock:
            if self.closed:
                raise SinkError(f"sink {self.destination!r} is closed")
            self._entries.append((timestamp, message))

    def close(self) -> None:
        with self._lock:
            self.closed = True

    @property
    def entries(self) -> List[Tuple[datetime, str]]:
        with self._lock:
            return list(self._entries)

    @property
    def messages(self) -> List[str]:
        return [m for _, m in self.entries]


class MemorySinkFactory:
    """Keeps every sink it hands out, keyed by destination, for inspection."""

    def __init__(self):
        self.sinks: Dict[str, MemorySink] = {}
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def __call__(self, destination: str, retention_days: int) -> MemorySink:
        sink = MemorySink(destination)
        with self._lock:
            self.calls.append(destination)
            self.sinks[destination] = sink
        return sink
