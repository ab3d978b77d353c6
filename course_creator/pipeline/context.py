"""Invocation context carried through every stage of one run."""

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from .events import Content

if TYPE_CHECKING:
    from ..reasoning import ReasoningService
    from ..sessions.session import Session


@dataclass(frozen=True)
class ContextKey:
    """Type-safe session state key identifier."""

    name: str

    def __str__(self) -> str:
        return self.name


# Session state keys shared between stages
JUDGE_OUTPUT = ContextKey("judge_output")


@dataclass
class InvocationContext:
    """
    Handle passed by reference into every stage for one run.

    Stages read state through ``get`` but never write it; the
    runner is the only writer.
    """

    session: "Session"
    reasoning: "ReasoningService"
    user_content: Optional[Content] = None
    invocation_id: str = field(default_factory=lambda: f"e-{uuid.uuid4().hex}")

    def get(self, key: ContextKey | str, default: Any = None) -> Any:
        """
        Read a state value written during this invocation.

        Sessions outlive runs, so ``session.state`` may still hold a value an
        earlier run merged. Only deltas recorded under this invocation id
        count; anything older reads as ``default``.
        """
        name = str(key)
        for event in reversed(self.session.events):
            if event.invocation_id != self.invocation_id:
                continue
            if name in event.actions.state_delta:
                return event.actions.state_delta[name]
        return default

    @property
    def user_text(self) -> str:
        if not self.user_content:
            return ""
        return "".join(p.text for p in self.user_content.parts if p.text)
