"""Immutable event records produced by pipeline stages."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


DELEGATION_FAILED = "DELEGATION_FAILED"


@dataclass(frozen=True)
class FunctionCall:
    """A named tool invocation requested by a model."""

    name: str
    args: Mapping[str, Any] = field(default_factory=dict)
    id: Optional[str] = None


@dataclass(frozen=True)
class FunctionResponse:
    """The result of executing a FunctionCall."""

    name: str
    response: Mapping[str, Any] = field(default_factory=dict)
    id: Optional[str] = None


@dataclass(frozen=True)
class Part:
    """One piece of content: text, a function call, or a function response."""

    text: Optional[str] = None
    function_call: Optional[FunctionCall] = None
    function_response: Optional[FunctionResponse] = None


@dataclass(frozen=True)
class Content:
    """Role-tagged ordered sequence of parts."""

    role: str
    parts: Tuple[Part, ...] = ()

    @classmethod
    def from_text(cls, text: str, role: str = "model") -> "Content":
        return cls(role=role, parts=(Part(text=text),))


def _frozen_mapping(data: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class EventActions:
    """Side effects an event declares: loop escalation and state merges."""

    escalate: bool = False
    state_delta: Mapping[str, Any] = field(default_factory=lambda: _frozen_mapping(None))

    def __post_init__(self):
        if not isinstance(self.state_delta, MappingProxyType):
            object.__setattr__(self, "state_delta", _frozen_mapping(self.state_delta))


@dataclass(frozen=True)
class Event:
    """
    A single unit of pipeline output.

    Events are never mutated once produced. Derived copies (for example the
    runner attaching a state delta) are made with ``with_state_delta``.
    """

    author: str
    content: Optional[Content] = None
    actions: EventActions = field(default_factory=EventActions)
    invocation_id: str = ""
    partial: bool = False
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def text(self) -> Optional[str]:
        """Concatenated text parts, or None when the event carries no text."""
        if not self.content:
            return None
        texts = [p.text for p in self.content.parts if p.text]
        return "".join(texts) if texts else None

    @property
    def function_calls(self) -> List[FunctionCall]:
        if not self.content:
            return []
        return [p.function_call for p in self.content.parts if p.function_call]

    @property
    def function_responses(self) -> List[FunctionResponse]:
        if not self.content:
            return []
        return [p.function_response for p in self.content.parts if p.function_response]

    @property
    def is_error(self) -> bool:
        return self.error_code is not None

    def is_final_response(self) -> bool:
        """True for a complete model answer (not a chunk, not a tool exchange)."""
        return (
            not self.partial
            and not self.function_calls
            and not self.function_responses
        )

    def with_state_delta(self, delta: Dict[str, Any]) -> "Event":
        merged = dict(self.actions.state_delta)
        merged.update(delta)
        return replace(
            self,
            actions=EventActions(escalate=self.actions.escalate, state_delta=merged),
        )


def create_error_event(
    author: str, message: str, invocation_id: str = "", code: str = DELEGATION_FAILED
) -> Event:
    """Build the synthetic terminal event that reports a failed stage."""
    return Event(
        author=author,
        invocation_id=invocation_id,
        error_code=code,
        error_message=message,
    )
