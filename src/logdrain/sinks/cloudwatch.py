from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from logdrain.sinks import SinkError
from logdrain.sinks.buffered import BufferedSink, Event

logger = logging.getLogger("logdrain.sinks.cloudwatch")

# PutLogEvents limits
MAX_BATCH_EVENTS = 10_000
MAX_BATCH_BYTES = 1_048_576
EVENT_OVERHEAD = 26
MAX_EVENT_BYTES = 262_144


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


class CloudWatchSink(BufferedSink):
    max_batch_events = MAX_BATCH_EVENTS
    max_batch_bytes = MAX_BATCH_BYTES
    event_overhead = EVENT_OVERHEAD

    def __init__(self, client: Any, log_group: str, log_stream: str, **kwargs):
        self.client = client
        self.log_group = log_group
        self.log_stream = log_stream
        super().__init__(log_group, **kwargs)

    def fit(self, message: str) -> str:
        if not message:
            # PutLogEvents rejects the whole batch on an empty message
            return " "
        limit = MAX_EVENT_BYTES - EVENT_OVERHEAD
        encoded = message.encode("utf-8")
        if len(encoded) <= limit:
            return message
        return encoded[:limit].decode("utf-8", errors="ignore")

    def ship(self, batch: List[Event]) -> None:
        events = [
            {"timestamp": int(ts.timestamp() * 1000), "message": message}
            for ts, message in batch
        ]
        # PutLogEvents rejects batches that aren't in chronological order
        events.sort(key=lambda e: e["timestamp"])
        resp = self.client.put_log_events(
            logGroupName=self.log_group,
            logStreamName=self.log_stream,
            logEvents=events,
        )
        rejected = (resp or {}).get("rejectedLogEventsInfo")
        if rejected:
            logger.warning("CloudWatch rejected part of a batch for %s: %s", self.log_group, rejected)


class CloudWatchSinkFactory:
    """
    Creates one CloudWatchSink per log group: makes sure the group exists,
    applies the retention policy and opens a fresh stream for this process.
    """

    def __init__(self, region_name: Optional[str] = None, client: Any = None):
        self.region_name = region_name
        self._client = client
        self._lock = threading.Lock()

    def client(self) -> Any:
        with self._lock:
            if self._client is None:
                self._client = boto3.client("logs", region_name=self.region_name)
            return self._client

    def __call__(self, destination: str, retention_days: int) -> CloudWatchSink:
        stream = uuid.uuid4().hex
        try:
            client = self.client()
            try:
                client.create_log_group(logGroupName=destination)
            except ClientError as exc:
                if _error_code(exc) != "ResourceAlreadyExistsException":
                    raise
            if retention_days > 0:
                client.put_retention_policy(logGroupName=destination, retentionInDays=retention_days)
            client.create_log_stream(logGroupName=destination, logStreamName=stream)
        except (BotoCoreError, ClientError) as exc:
            raise SinkError(f"cannot set up log group {destination!r}: {exc}") from exc

        logger.info("opened log stream %s/%s", destination, stream)
        return CloudWatchSink(client, destination, stream)
