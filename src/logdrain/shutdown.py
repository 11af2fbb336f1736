from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from logdrain.registry import SinkRegistry
from logdrain.sinks import Sink

logger = logging.getLogger("logdrain.shutdown")


def _close(name: str, sink: Sink) -> None:
    start = time.monotonic()
    sink.close()
    logger.info("closed sink %s in %.1fms", name, (time.monotonic() - start) * 1000.0)


async def drain_sinks(registry: SinkRegistry, timeout: Optional[float] = None) -> bool:
    """
    Close every sink in the registry concurrently and wait for all of them.

    Returns False if `timeout` seconds pass with closes still running; those
    are abandoned (their threads keep flushing in the background). Close
    failures are logged and not retried.
    """
    sinks = await registry.snapshot()
    if not sinks:
        return True

    logger.info("draining %d sinks", len(sinks))
    tasks = {
        asyncio.create_task(asyncio.to_thread(_close, name, sink)): name
        for name, sink in sinks
    }
    done, pending = await asyncio.wait(tasks, timeout=timeout)

    for task in done:
        exc = task.exception()
        if exc is not None:
            logger.error("failed to close sink %s: %s", tasks[task], exc, exc_info=exc)

    if pending:
        logger.warning(
            "drain timed out after %ss, %d sinks still closing: %s",
            timeout, len(pending), ", ".join(sorted(tasks[t] for t in pending)),
        )
        for task in pending:
            task.cancel()
        return False
    return True
