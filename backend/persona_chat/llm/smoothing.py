"""
Stream smoothing - re-chunk provider deltas into whole words with a small
delay so clients render text at an even pace.
"""

import asyncio
import re
from typing import AsyncIterator

_WORD = re.compile(r"\s*\S+\s+")


async def smooth_stream(source: AsyncIterator[str], delay_ms: int = 10) -> AsyncIterator[str]:
    """
    Yield ``source`` text one word (plus trailing whitespace) at a time.

    Text that doesn't yet end in whitespace is buffered until more arrives
    or the source ends, then flushed as-is. Concatenating the output always
    equals concatenating the input.
    """
    delay = delay_ms / 1000
    buffer = ""
    async for delta in source:
        buffer += delta
        while True:
            match = _WORD.match(buffer)
            if not match:
                break
            yield match.group(0)
            buffer = buffer[match.end():]
            if delay:
                await asyncio.sleep(delay)
    if buffer:
        yield buffer
