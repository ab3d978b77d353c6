"""Forwards a live pipeline run to one observer.

The bridge pulls events from the run one at a time, sends one frame per
event, and keeps the connection alive with comment frames in between.
Cancellation is cooperative: a disconnect is noticed at the next event
boundary, so its latency is bounded by the current leaf call.
"""

import asyncio
import contextlib
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from ..pipeline.events import Event
from .frames import (
    KEEPALIVE_FRAME,
    ErrorFrame,
    SnapshotTracker,
    encode_frame,
    event_to_frame,
)
from .transport import Transport

logger = logging.getLogger(__name__)

StateReader = Callable[[], Awaitable[Any]]


class StreamBridge:
    """Serves one run to one transport."""

    def __init__(
        self,
        transport: Transport,
        read_snapshot: Optional[StateReader] = None,
        keepalive_interval: float = 15.0,
        drain_on_disconnect: bool = False,
    ):
        """
        Args:
            transport: Connection to the observer
            read_snapshot: Async callable returning the current value of the
                watched state key (``judge_output``), or None to skip
            keepalive_interval: Seconds between keep-alive frames
            drain_on_disconnect: Keep pulling events after a disconnect
                (without sending) so the run's session state completes
        """
        self.transport = transport
        self.read_snapshot = read_snapshot
        self.keepalive_interval = keepalive_interval
        self.drain_on_disconnect = drain_on_disconnect
        self.cancelled = False
        self.frames_sent = 0
        self._keepalive_task: Optional[asyncio.Task] = None
        self._snapshots = SnapshotTracker()

    def _on_remote_close(self) -> None:
        self.cancelled = True
        self._stop_keepalive()

    def _stop_keepalive(self) -> None:
        if self._keepalive_task is not None and not self._keepalive_task.done():
            self._keepalive_task.cancel()

    async def _keepalive(self) -> None:
        while not self.transport.closed:
            await asyncio.sleep(self.keepalive_interval)
            if self.transport.closed:
                return
            if not await self._transmit(KEEPALIVE_FRAME):
                return

    async def _snapshot(self) -> Any:
        if self.read_snapshot is None:
            return None
        try:
            return await self.read_snapshot()
        except Exception as e:
            logger.warning(f"Could not read state snapshot: {e}")
            return None

    async def _transmit(self, frame: bytes) -> bool:
        """Send one frame; a failing transport counts as a disconnect."""
        try:
            await self.transport.send(frame)
        except Exception as e:
            logger.warning(f"Transport send failed, treating as disconnect: {e}")
            self._on_remote_close()
            return False
        return True

    async def _send(self, frame: bytes) -> None:
        if self.cancelled or self.transport.closed:
            return
        if await self._transmit(frame):
            self.frames_sent += 1

    async def serve(self, events: AsyncIterator[Event]) -> None:
        """
        Forward ``events`` until exhausted, cancelled, or failed.

        Exactly one error frame is sent when the run yields an error event
        or raises; the transport is always closed on the way out.
        """
        self.transport.on_close(self._on_remote_close)
        self._keepalive_task = asyncio.create_task(self._keepalive())

        try:
            async for event in events:
                if self.cancelled:
                    if not self.drain_on_disconnect:
                        logger.info("Stopping run: observer disconnected")
                        break
                    continue

                if event.is_error:
                    logger.warning(
                        f"Run failed in {event.author}: {event.error_message}"
                    )
                    await self._send(
                        encode_frame(
                            ErrorFrame(
                                error=event.error_message or "Pipeline failed",
                                code=event.error_code,
                            )
                        )
                    )
                    break

                snapshot = await self._snapshot()
                if self._snapshots.changed(snapshot):
                    frame = event_to_frame(event, snapshot)
                else:
                    frame = event_to_frame(event)
                await self._send(encode_frame(frame))
        except Exception as e:
            logger.error(f"Run raised while streaming: {e}", exc_info=True)
            await self._send(encode_frame(ErrorFrame(error=str(e))))
        finally:
            self._stop_keepalive()
            with contextlib.suppress(asyncio.CancelledError):
                await self._keepalive_task
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()
            try:
                await self.transport.close()
            except Exception as e:
                logger.warning(f"Transport close failed: {e}")
            logger.info(
                f"Stream closed: {self.frames_sent} frames sent, cancelled={self.cancelled}"
            )


def session_state_reader(
    session_service, app_name: str, user_id: str, session_id: str, key: str
) -> StateReader:
    """Build a ``read_snapshot`` callable that reads ``key`` from a session."""

    async def read() -> Any:
        session = await session_service.get_session(app_name, user_id, session_id)
        if session is None:
            return None
        return session.state.get(key)

    return read
