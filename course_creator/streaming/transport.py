"""Transport contract used by the stream bridge, plus the SSE implementation."""

import asyncio
import logging
from typing import AsyncIterator, Callable, List, Optional, Protocol

logger = logging.getLogger(__name__)

CloseCallback = Callable[[], None]


class Transport(Protocol):
    """A connection to one observer."""

    @property
    def closed(self) -> bool:
        ...

    async def send(self, frame: bytes) -> None:
        ...

    def on_close(self, callback: CloseCallback) -> None:
        """Register a callback fired when the remote side goes away."""
        ...

    async def close(self) -> None:
        ...


class SSETransport:
    """
    Queue-backed transport feeding a Starlette ``StreamingResponse``.

    ``send`` enqueues complete frames; ``body()`` is the response iterator.
    If the response stops iterating before ``close()`` was called (the
    client disconnected), the registered close callbacks fire.
    """

    _END = None

    def __init__(self):
        self._queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue()
        self._callbacks: List[CloseCallback] = []
        self._closed = False
        self._remote_closed = False

    @property
    def closed(self) -> bool:
        return self._closed or self._remote_closed

    async def send(self, frame: bytes) -> None:
        if self.closed:
            return
        await self._queue.put(frame)

    def on_close(self, callback: CloseCallback) -> None:
        self._callbacks.append(callback)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(self._END)

    def remote_closed(self) -> None:
        """Mark the observer as gone and notify listeners once."""
        if self._remote_closed or self._closed:
            return
        self._remote_closed = True
        logger.info("Observer disconnected")
        for callback in self._callbacks:
            callback()

    async def body(self) -> AsyncIterator[bytes]:
        """Response body iterator: yields frames until the transport closes."""
        try:
            while True:
                frame = await self._queue.get()
                if frame is self._END:
                    return
                yield frame
        finally:
            if not self._closed:
                self.remote_closed()
