from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from logdrain.config import Settings


class SinkError(RuntimeError):
    pass


class Sink(ABC):
    """
    Append-only log destination.

    append() may be called concurrently from many requests; close() is called
    once at shutdown and must flush whatever is still buffered.
    """

    @abstractmethod
    def append(self, timestamp: datetime, message: str) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...


# (destination, retention_days) -> Sink; raises SinkError when the sink can't be created
SinkFactory = Callable[[str, int], Sink]


def build_sink_factory(settings: "Settings") -> SinkFactory:
    if settings.sink == "cloudwatch":
        from logdrain.sinks.cloudwatch import CloudWatchSinkFactory

        return CloudWatchSinkFactory(region_name=settings.aws_region)

    if settings.sink == "http":
        from logdrain.sinks.http import HttpSinkFactory

        return HttpSinkFactory(url=settings.forward_url, token=settings.forward_token)

    raise ValueError(f"unknown sink {settings.sink!r} (expected cloudwatch or http)")


__all__ = ["Sink", "SinkError", "SinkFactory", "build_sink_factory"]
