"""
Event channel - the ordered progress stream of one turn

One writer (the turn), one reader (the HTTP response). Events come out in
exactly the order they were written. The reader acknowledges an event by
asking for the next one, which lets the writer wait until everything it
wrote has been handed to the transport before it persists the turn.
"""
from typing import AsyncIterator, List
import asyncio

from models.sse import SSEEvent
from utils.logger import get_logger

logger = get_logger(__name__)

_CLOSE = object()


class ChannelClosedError(RuntimeError):
    """Write attempted after the channel was closed"""


class EventChannel:
    """
    Usage:
        channel = EventChannel()

        # writer
        channel.write(event)
        flushed = await channel.wait_flushed(timeout=1.0)
        channel.close()

        # reader
        async for event in channel:
            yield event.to_sse_format()
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._events: List[SSEEvent] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def events(self) -> List[SSEEvent]:
        """Everything written so far, in write order"""
        return list(self._events)

    def write(self, event: SSEEvent) -> None:
        if self._closed:
            raise ChannelClosedError(f"Cannot write '{event.event}' to a closed channel")
        self._events.append(event)
        self._queue.put_nowait(event)

    def close(self) -> bool:
        """Close the channel. Returns False if it was already closed."""
        if self._closed:
            return False
        self._closed = True
        self._queue.put_nowait(_CLOSE)
        return True

    async def wait_flushed(self, timeout: float) -> bool:
        """
        Wait until the reader has taken every written event and asked for the next.

        Returns False on timeout (e.g. the reader went away).
        """
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Event stream not flushed within {timeout}s")
            return False

    async def __aiter__(self) -> AsyncIterator[SSEEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                self._queue.task_done()
                return
            try:
                yield item
            finally:
                # Runs when the reader requests the next event (or goes away)
                self._queue.task_done()
