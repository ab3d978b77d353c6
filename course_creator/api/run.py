"""Streamed pipeline runs over Server-Sent Events."""

import asyncio
import logging
from typing import Optional, Set

from fastapi import APIRouter, Depends, Query
from fastapi.exceptions import RequestValidationError
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from .. import config
from ..dependencies import (
    get_pipeline_settings,
    get_reasoning_service,
    get_session_service,
)
from ..pipeline.course_creator import build_course_creator
from ..pipeline.events import Content
from ..pipeline.settings import PipelineSettings
from ..reasoning import ReasoningService
from ..runner import PipelineRunner
from ..sessions import BaseSessionService
from ..streaming import SSETransport, StreamBridge, session_state_reader
from .schemas import RunStreamQuery

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/run", tags=["run"])

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# Bridges outlive the request handler; hold a reference until they finish
_active_streams: Set[asyncio.Task] = set()


@router.get("/stream")
async def run_stream(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    q: Optional[str] = Query(default=None),
    model: Optional[str] = Query(default=None),
    max_iterations: Optional[str] = Query(default=None, alias="maxIterations"),
    session_service: BaseSessionService = Depends(get_session_service),
    reasoning: ReasoningService = Depends(get_reasoning_service),
    settings: PipelineSettings = Depends(get_pipeline_settings),
) -> StreamingResponse:
    """
    Run the course creator pipeline and stream its events.

    The session is created on first use. Each pipeline event becomes one
    ``data:`` frame ``{"author", "text", "calls", "responses", "escalate",
    "judge_output"}``; ``judge_output`` is only present when it changed.
    A failed run ends with one ``{"error", "code"}`` frame. Comment frames
    (``:``) are sent every ``KEEPALIVE_INTERVAL_SECONDS``.

    Raises:
        RequestValidationError: Rendered as 400 ``{"error": ...}``
    """
    try:
        query = RunStreamQuery.model_validate(
            {
                "userId": user_id,
                "sessionId": session_id,
                "q": q,
                "model": model,
                "maxIterations": max_iterations,
            }
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors())

    existing = await session_service.get_session(
        config.APP_NAME, query.user_id, query.session_id
    )
    if existing is None:
        await session_service.create_session(
            config.APP_NAME, query.user_id, query.session_id
        )

    stage = build_course_creator(
        model=query.model, max_iterations=query.max_iterations, settings=settings
    )
    runner = PipelineRunner(config.APP_NAME, stage, session_service, reasoning)

    transport = SSETransport()
    bridge = StreamBridge(
        transport,
        read_snapshot=session_state_reader(
            session_service,
            config.APP_NAME,
            query.user_id,
            query.session_id,
            config.SNAPSHOT_STATE_KEY,
        ),
        keepalive_interval=config.KEEPALIVE_INTERVAL_SECONDS,
        drain_on_disconnect=config.DRAIN_ON_DISCONNECT,
    )
    events = runner.run(
        query.user_id, query.session_id, Content.from_text(query.q, role="user")
    )

    logger.info(f"Streaming run for session {query.session_id} (user {query.user_id})")
    task = asyncio.create_task(bridge.serve(events))
    _active_streams.add(task)
    task.add_done_callback(_active_streams.discard)

    return StreamingResponse(
        transport.body(), media_type="text/event-stream", headers=SSE_HEADERS
    )
