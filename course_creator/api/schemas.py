"""Request models for the HTTP API."""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field

Identifier = Annotated[str, Field(min_length=1, max_length=128)]


class SessionCreateBody(BaseModel):
    """Body of ``POST /api/sessions``."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Identifier = Field(alias="userId")
    session_id: Optional[Identifier] = Field(default=None, alias="sessionId")


class RunStreamQuery(BaseModel):
    """Query string of ``GET /api/run/stream``."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Identifier = Field(alias="userId")
    session_id: Identifier = Field(alias="sessionId")
    q: str = Field(min_length=1, max_length=2000)
    model: Optional[str] = None
    max_iterations: Optional[int] = Field(
        default=None, ge=1, le=10, alias="maxIterations"
    )


def describe_validation_error(errors: list) -> str:
    """Flatten pydantic/FastAPI error dicts into one message."""
    messages = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        field = ".".join(loc)
        messages.append(f"{field}: {error.get('msg')}" if field else error.get("msg", ""))
    return "; ".join(messages) or "Invalid request"


