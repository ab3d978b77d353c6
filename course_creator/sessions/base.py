"""Abstract session store consumed by the pipeline runner."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..pipeline.events import Event
from .session import Session


class BaseSessionService(ABC):
    """
    Session store contract.

    Implementations may keep sessions in memory or persist them elsewhere,
    but must preserve the ordering and merge rules: events are appended in
    the order they are handed in, and a state merge overwrites the key.
    """

    @abstractmethod
    async def create_session(
        self,
        app_name: str,
        user_id: str,
        session_id: Optional[str] = None,
        state: Optional[Dict[str, Any]] = None,
    ) -> Session:
        """Create a session, generating an id when none is given."""
        pass

    @abstractmethod
    async def get_session(
        self, app_name: str, user_id: str, session_id: str
    ) -> Optional[Session]:
        """Return the session or None when it does not exist."""
        pass

    @abstractmethod
    async def list_sessions(self, app_name: str, user_id: str) -> List[Session]:
        pass

    @abstractmethod
    async def merge_state(self, session: Session, key: str, value: Any) -> None:
        """Set ``state[key]``, replacing any previous value."""
        pass

    @abstractmethod
    async def _append(self, session: Session, event: Event) -> None:
        pass

    async def append_event(self, session: Session, event: Event) -> Event:
        """
        Apply an event's declared state delta, then append it to the log.

        Args:
            session: Session the event belongs to
            event: Event to record

        Returns:
            The event as recorded
        """
        if not event.partial:
            for key, value in event.actions.state_delta.items():
                await self.merge_state(session, key, value)
        await self._append(session, event)
        return event
