"""Exception types raised across the course creator service."""

from typing import Optional


class CourseCreatorError(Exception):
    """Base class for all course creator errors."""


class DelegationError(CourseCreatorError):
    """A stage's call into the reasoning capability failed."""

    def __init__(self, stage_name: str, cause: BaseException):
        self.stage_name = stage_name
        self.cause = cause
        super().__init__(f"Stage '{stage_name}' failed: {cause}")


class SessionNotFoundError(CourseCreatorError):
    """No session exists for the given (app, user, session) triple."""

    def __init__(self, app_name: str, user_id: str, session_id: str):
        self.app_name = app_name
        self.user_id = user_id
        self.session_id = session_id
        super().__init__(
            f"Session not found: app={app_name} user={user_id} session={session_id}"
        )


class SessionExistsError(CourseCreatorError):
    """A session with the requested id already exists."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session already exists: {session_id}")


class ProviderError(CourseCreatorError):
    """An LLM provider request failed."""

    def __init__(self, provider_id: str, message: str, status_code: Optional[int] = None):
        self.provider_id = provider_id
        self.status_code = status_code
        super().__init__(f"{provider_id} query failed: {message}")


class ToolExecutionError(CourseCreatorError):
    """A tool requested by the model could not be executed."""
