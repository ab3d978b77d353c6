"""Streaming a live run to a remote observer."""

from .bridge import StreamBridge, session_state_reader
from .frames import (
    KEEPALIVE_FRAME,
    ErrorFrame,
    EventFrame,
    encode_frame,
    event_to_frame,
    frames_for_event_log,
)
from .transport import SSETransport, Transport

__all__ = [
    "StreamBridge",
    "session_state_reader",
    "Transport",
    "SSETransport",
    "EventFrame",
    "ErrorFrame",
    "KEEPALIVE_FRAME",
    "encode_frame",
    "event_to_frame",
    "frames_for_event_log",
]
