"""Session record: mutable state plus append-only event log."""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..pipeline.events import Event


@dataclass
class Session:
    """
    State store for one (app_name, user_id, id) triple.

    ``state`` is last-write-wins per key. ``events`` is append-only and kept
    in production order; only a session service mutates either.
    """

    app_name: str
    user_id: str
    id: str
    state: Dict[str, Any] = field(default_factory=dict)
    events: List[Event] = field(default_factory=list)
    last_update_time: float = field(default_factory=time.time)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.app_name, self.user_id, self.id)

    def to_dict(self) -> Dict[str, Any]:
        """Summary used by the API layer."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "appName": self.app_name,
        }
