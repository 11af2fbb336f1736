import asyncio
import threading
import time

from logdrain.registry import SinkRegistry
from logdrain.shutdown import drain_sinks
from logdrain.sinks import Sink
from logdrain.sinks.memory import MemorySinkFactory


class SlowCloseSink(Sink):
    def __init__(self, delay):
        self.delay = delay
        self.closed = threading.Event()

    def append(self, timestamp, message):
        pass

    def close(self):
        time.sleep(self.delay)
        self.closed.set()


class ExplodingSink(Sink):
    def append(self, timestamp, message):
        pass

    def close(self):
        raise RuntimeError("flush failed")


def _registry_with(sinks):
    def factory(name, retention_days):
        return sinks[name]
    return SinkRegistry(factory)


def _populate(registry, names):
    async def run():
        for n in names:
            await registry.get_or_create(n)
    return run()


def test_empty_registry_drains_immediately():
    assert asyncio.run(drain_sinks(SinkRegistry(MemorySinkFactory()))) is True


def test_waits_for_every_close():
    sinks = {f"s{i}": SlowCloseSink(0.05 * (i + 1)) for i in range(4)}
    registry = _registry_with(sinks)

    async def run():
        await _populate(registry, sinks)
        return await drain_sinks(registry)

    assert asyncio.run(run()) is True
    assert all(s.closed.is_set() for s in sinks.values())


def test_closes_run_concurrently():
    sinks = {f"s{i}": SlowCloseSink(0.2) for i in range(5)}
    registry = _registry_with(sinks)

    async def run():
        await _populate(registry, sinks)
        start = time.monotonic()
        await drain_sinks(registry)
        return time.monotonic() - start

    # serial closes would take a full second
    assert asyncio.run(run()) < 0.8


def test_failed_close_does_not_stop_the_others():
    sinks = {"bad": ExplodingSink(), "good": SlowCloseSink(0.01)}
    registry = _registry_with(sinks)

    async def run():
        await _populate(registry, sinks)
        return await drain_sinks(registry)

    assert asyncio.run(run()) is True
    assert sinks["good"].closed.is_set()


def test_deadline_abandons_slow_closes():
    sinks = {"fast": SlowCloseSink(0.0), "slow": SlowCloseSink(0.6)}
    registry = _registry_with(sinks)

    async def run():
        await _populate(registry, sinks)
        finished = await drain_sinks(registry, timeout=0.2)
        return finished, sinks["slow"].closed.is_set()

    finished, slow_closed = asyncio.run(run())
    assert finished is False
    assert not slow_closed
    assert sinks["fast"].closed.is_set()
