"""What goes into each frame sent to an observer, and its SSE encoding."""

import json
from typing import Any, Iterable, Iterator, List, Optional

from pydantic import BaseModel, Field

from ..pipeline.events import Event

KEEPALIVE_FRAME = b":\n\n"

_UNSET = object()


class EventFrame(BaseModel):
    """One forwarded pipeline event."""

    author: str = Field(description="Stage that produced the event")
    text: Optional[str] = Field(default=None, description="Text content, if any")
    calls: List[str] = Field(default_factory=list, description="Function-call names")
    responses: List[str] = Field(
        default_factory=list, description="Function-response names"
    )
    escalate: bool = False
    judge_output: Any = Field(
        default=None, description="Snapshot of the watched state key, when changed"
    )


class ErrorFrame(BaseModel):
    """Final frame sent when the run fails."""

    error: str
    code: Optional[str] = None


def event_to_frame(event: Event, snapshot: Any = _UNSET) -> EventFrame:
    frame = EventFrame(
        author=event.author or "system",
        text=event.text,
        calls=[c.name for c in event.function_calls],
        responses=[r.name for r in event.function_responses],
        escalate=bool(event.actions.escalate),
    )
    if snapshot is not _UNSET:
        frame.judge_output = snapshot
    return frame


def encode_frame(frame: BaseModel) -> bytes:
    """Encode a frame as one complete SSE ``data:`` message."""
    payload = frame.model_dump_json(exclude_none=True)
    return f"data: {payload}\n\n".encode("utf-8")


def snapshot_fingerprint(value: Any) -> str:
    """Stable comparison key for a state value."""
    return json.dumps(value, sort_keys=True, default=str)


class SnapshotTracker:
    """Remembers the last forwarded value of a state key."""

    def __init__(self):
        self._last: Optional[str] = None

    def changed(self, value: Any) -> bool:
        if value is None:
            return False
        fingerprint = snapshot_fingerprint(value)
        if fingerprint == self._last:
            return False
        self._last = fingerprint
        return True


def frames_for_event_log(
    events: Iterable[Event], snapshot_key: str = "judge_output"
) -> Iterator[EventFrame]:
    """
    Rebuild the frame sequence an observer saw from a session's event log.

    State is reconstructed by re-applying each event's state delta in log
    order, so the snapshot attached to each frame matches what a live
    observer read at that point.
    """
    state: dict = {}
    tracker = SnapshotTracker()
    for event in events:
        if event.author == "user":
            continue
        if event.is_error:
            return
        if not event.partial:
            state.update(event.actions.state_delta)
        value = state.get(snapshot_key)
        if tracker.changed(value):
            yield event_to_frame(event, value)
        else:
            yield event_to_frame(event)
