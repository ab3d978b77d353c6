"""Process-local session store."""

import logging
import time
import uuid
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import SessionExistsError
from ..pipeline.events import Event
from .base import BaseSessionService
from .session import Session

logger = logging.getLogger(__name__)


class InMemorySessionService(BaseSessionService):
    """Keeps sessions for the lifetime of the process. No locking."""

    def __init__(self):
        self._sessions: Dict[Tuple[str, str, str], Session] = {}

    async def create_session(
        self,
        app_name: str,
        user_id: str,
        session_id: Optional[str] = None,
        state: Optional[Dict[str, Any]] = None,
    ) -> Session:
        session = Session(
            app_name=app_name,
            user_id=user_id,
            id=session_id or str(uuid.uuid4()),
            state=dict(state or {}),
        )
        if session.key in self._sessions:
            raise SessionExistsError(session.id)

        self._sessions[session.key] = session
        logger.info(f"Created session {session.id} for user {user_id}")
        return session

    async def get_session(
        self, app_name: str, user_id: str, session_id: str
    ) -> Optional[Session]:
        return self._sessions.get((app_name, user_id, session_id))

    async def list_sessions(self, app_name: str, user_id: str) -> List[Session]:
        return [
            s
            for (app, user, _), s in self._sessions.items()
            if app == app_name and user == user_id
        ]

    async def merge_state(self, session: Session, key: str, value: Any) -> None:
        session.state[key] = value
        session.last_update_time = time.time()

    async def _append(self, session: Session, event: Event) -> None:
        session.events.append(event)
        session.last_update_time = time.time()
