from __future__ import annotations

import logging
import queue
import threading
import time
from datetime import datetime
from typing import List, Tuple

from logdrain.sinks import Sink, SinkError

logger = logging.getLogger("logdrain.sinks")

Event = Tuple[datetime, str]

_STOP = object()


class BufferedSink(Sink):
    """
    Queue + background worker. append() only enqueues, the worker groups
    entries into batches and hands them to ship(). close() drains the queue,
    ships the last batch and stops the worker.
    """

    max_batch_events = 500
    max_batch_bytes = 1_048_576
    event_overhead = 0
    flush_interval = 1.0

    def __init__(self, destination: str, *, max_queue: int = 100_000):
        self.destination = destination
        self.dropped = 0
        self.q: "queue.Queue[object]" = queue.Queue(maxsize=max_queue)
        self._closed = False
        self._state_lock = threading.Lock()
        self._thread = threading.Thread(
            target=self._worker, name=f"sink-{destination}", daemon=True
        )
        self._thread.start()

    # ----------------------------
    # Sink API
    # ----------------------------
    def append(self, timestamp: datetime, message: str) -> None:
        with self._state_lock:
            if self._closed:
                raise SinkError(f"sink {self.destination!r} is closed")
            try:
                self.q.put_nowait((timestamp, message))
            except queue.Full:
                # drop under pressure
                self.dropped += 1
                if self.dropped == 1 or self.dropped % 1000 == 0:
                    logger.warning("queue full for %s, %d entries dropped so far", self.destination, self.dropped)

    def close(self) -> None:
        with self._state_lock:
            first = not self._closed
            self._closed = True
        if first:
            # outside the lock: put() may block on a full queue
            self.q.put(_STOP)
        self._thread.join()

    @property
    def closed(self) -> bool:
        return self._closed

    # ----------------------------
    # Subclass hooks
    # ----------------------------
    def ship(self, batch: List[Event]) -> None:
        raise NotImplementedError

    def fit(self, message: str) -> str:
        return message

    def event_size(self, message: str) -> int:
        return len(message.encode("utf-8")) + self.event_overhead

    # ----------------------------
    # Worker
    # ----------------------------
    def _flush(self, batch: List[Event]) -> None:
        try:
            self.ship(batch)
        except Exception:
            logger.warning("failed to ship %d entries for %s", len(batch), self.destination, exc_info=True)

    def _worker(self) -> None:
        batch: List[Event] = []
        size = 0
        deadline = time.monotonic() + self.flush_interval
        stopping = False

        while not stopping:
            try:
                item = self.q.get(timeout=max(0.0, deadline - time.monotonic()))
            except queue.Empty:
                item = None

            if item is _STOP:
                stopping = True
            elif item is not None:
                ts, message = item
                message = self.fit(message)
                n = self.event_size(message)
                if batch and (len(batch) >= self.max_batch_events or size + n > self.max_batch_bytes):
                    self._flush(batch)
                    batch, size = [], 0
                batch.append((ts, message))
                size += n

            now = time.monotonic()
            if batch and (stopping or now >= deadline or len(batch) >= self.max_batch_events):
                self._flush(batch)
                batch, size = [], 0
            if now >= deadline:
                deadline = now + self.flush_interval
