"""Session state stores."""

from .base import BaseSessionService
from .in_memory import InMemorySessionService
from .session import Session

__all__ = [
    "BaseSessionService",
    "InMemorySessionService",
    "Session",
]
