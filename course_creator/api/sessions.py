"""Session management endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from .. import config
from ..dependencies import get_session_service
from ..exceptions import SessionExistsError
from ..sessions import BaseSessionService
from .schemas import SessionCreateBody

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.post("")
async def create_session(
    body: SessionCreateBody,
    session_service: BaseSessionService = Depends(get_session_service),
):
    """
    Create a session for a user.

    Args:
        body: ``{"userId": ..., "sessionId": ...}``; ``sessionId`` is
            generated when omitted

    Returns:
        ``{"id", "userId", "appName"}``

    Raises:
        HTTPException: 409 if the session id is already taken
    """
    try:
        session = await session_service.create_session(
            config.APP_NAME, body.user_id, body.session_id
        )
    except SessionExistsError as e:
        logger.warning(str(e))
        raise HTTPException(status_code=409, detail=str(e))
    return session.to_dict()
