from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from logdrain.sinks import Sink, SinkError, SinkFactory

logger = logging.getLogger("logdrain.registry")


class SinkRegistry:
    """
    destination name -> Sink, created lazily and exactly once per name.

    One lock guards the map, including the create-on-miss path, so
    concurrent first requests for a destination wait for a single
    construction instead of racing. The lock is never held while a sink
    appends or closes.

    With cache_failures=True a failed construction is remembered under the
    destination and re-raised for every later request, so a destination the
    downstream keeps rejecting isn't retried on every batch. Until restart
    that destination stays failed. With cache_failures=False the next
    request tries again.
    """

    def __init__(self, factory: SinkFactory, retention_days: int = 0, cache_failures: bool = True):
        self.factory = factory
        self.retention_days = retention_days
        self.cache_failures = cache_failures
        self._entries: Dict[str, Tuple[Optional[Sink], Optional[SinkError]]] = {}
        self._lock = asyncio.Lock()

    async def get_or_create(self, name: str) -> Sink:
        async with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                entry = await self._create(name)
        sink, err = entry
        if err is not None:
            # fresh exception per request; re-raising the cached one would keep
            # growing its traceback
            raise SinkError(str(err)) from err
        return sink

    async def _create(self, name: str) -> Tuple[Optional[Sink], Optional[SinkError]]:
        try:
            sink = await asyncio.to_thread(self.factory, name, self.retention_days)
        except SinkError as exc:
            logger.error("sink creation failed for %s: %s", name, exc)
            if self.cache_failures:
                self._entries[name] = (None, exc)
            return None, exc

        logger.info("created sink for %s", name)
        self._entries[name] = (sink, None)
        return sink, None

    async def snapshot(self) -> List[Tuple[str, Sink]]:
        async with self._lock:
            return [(name, sink) for name, (sink, _) in self._entries.items() if sink is not None]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries
