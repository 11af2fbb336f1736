from __future__ import annotations

from typing import AsyncIterable, AsyncIterator

LF = b"\n"


async def frame_lines(chunks: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    """
    Split a chunked byte stream into lines.

    Every yielded line keeps its trailing LF, except possibly the last one:
    if the stream ends mid-line the leftover bytes are yielded as-is.
    Errors raised by the underlying stream propagate unchanged.
    """
    pending = bytearray()
    async for chunk in chunks:
        if not chunk:
            continue
        pending += chunk
        start = 0
        while True:
            idx = pending.find(LF, start)
            if idx < 0:
                break
            yield bytes(pending[start:idx + 1])
            start = idx + 1
        if start:
            del pending[:start]

    if pending:
        yield bytes(pending)
