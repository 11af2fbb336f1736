from __future__ import annotations

import logging
from typing import List

import requests

from logdrain.sinks import SinkError
from logdrain.sinks.buffered import BufferedSink, Event

logger = logging.getLogger("logdrain.sinks.http")


class HttpSink(BufferedSink):
    """Forwards batches as JSON to another collector."""

    max_batch_events = 500

    def __init__(self, url: str, destination: str, token: str = "", timeout: float = 5.0, **kwargs):
        self.url = url
        self.token = token
        self.timeout = timeout
        super().__init__(destination, **kwargs)

    def ship(self, batch: List[Event]) -> None:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        payload = {
            "destination": self.destination,
            "entries": [{"timestamp": ts.isoformat(), "message": message} for ts, message in batch],
        }
        resp = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        resp.raise_for_status()


class HttpSinkFactory:
    def __init__(self, url: str, token: str = "", timeout: float = 5.0):
        self.url = url
        self.token = token
        self.timeout = timeout

    def __call__(self, destination: str, retention_days: int) -> HttpSink:
        if not self.url.startswith(("http://", "https://")):
            raise SinkError(f"forward url must be http(s): {self.url!r}")
        # retention is the receiving side's business
        return HttpSink(self.url, destination, token=self.token, timeout=self.timeout)
