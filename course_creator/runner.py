"""Drives a stage tree against a session for one invocation."""

import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

from pydantic import ValidationError

from .exceptions import DelegationError, SessionNotFoundError
from .pipeline.base import LlmStage, Stage, run_stage, walk_stages
from .pipeline.context import InvocationContext
from .pipeline.events import Content, Event, create_error_event
from .reasoning import ReasoningService
from .sessions.base import BaseSessionService

logger = logging.getLogger(__name__)


class PipelineRunner:
    """
    Runs a root stage and records every event it produces.

    For each event, before handing it to the caller, the runner attaches the
    originating stage's output (when that stage declares an ``output_key``)
    as the event's state delta and appends the event to the session. A
    failure inside a leaf ends the run with one error event; the runner
    never retries.
    """

    def __init__(
        self,
        app_name: str,
        stage: Stage,
        session_service: BaseSessionService,
        reasoning: ReasoningService,
    ):
        self.app_name = app_name
        self.stage = stage
        self.session_service = session_service
        self.reasoning = reasoning
        self._output_stages = self._index_output_stages(stage)

    @staticmethod
    def _index_output_stages(root: Stage) -> Dict[str, LlmStage]:
        seen: set[str] = set()
        output_stages: Dict[str, LlmStage] = {}
        for stage in walk_stages(root):
            if stage.name in seen:
                raise ValueError(f"Duplicate stage name in pipeline: {stage.name}")
            seen.add(stage.name)
            if isinstance(stage, LlmStage) and stage.output_key:
                output_stages[stage.name] = stage
        return output_stages

    async def run(
        self,
        user_id: str,
        session_id: str,
        new_message: Optional[Content] = None,
    ) -> AsyncIterator[Event]:
        """
        Run the pipeline for one user message.

        Args:
            user_id: Session owner
            session_id: Existing session id
            new_message: User input appended to the log before the run

        Yields:
            Events in production order, each already recorded in the session

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = await self.session_service.get_session(
            self.app_name, user_id, session_id
        )
        if session is None:
            raise SessionNotFoundError(self.app_name, user_id, session_id)

        ctx = InvocationContext(
            session=session, reasoning=self.reasoning, user_content=new_message
        )
        logger.info(
            f"Run {ctx.invocation_id} started: stage={self.stage.name} session={session_id}"
        )

        if new_message is not None:
            await self.session_service.append_event(
                session,
                Event(author="user", content=new_message, invocation_id=ctx.invocation_id),
            )

        count = 0
        events = run_stage(self.stage, ctx)
        try:
            async for event in events:
                event = self._attach_output(event)
                await self.session_service.append_event(session, event)
                count += 1
                yield event
        except DelegationError as e:
            logger.warning(f"Run {ctx.invocation_id} ended by failed stage: {e}")
            error_event = create_error_event(
                author=e.stage_name,
                message=str(e.cause),
                invocation_id=ctx.invocation_id,
            )
            await self.session_service.append_event(session, error_event)
            yield error_event
            return
        finally:
            await events.aclose()

        logger.info(f"Run {ctx.invocation_id} complete: {count} events")

    def _attach_output(self, event: Event) -> Event:
        stage = self._output_stages.get(event.author)
        if stage is None or event.partial or event.text is None:
            return event
        if not event.is_final_response():
            return event

        output = self._parse_output(stage, event.text)
        if output is None:
            return event
        return event.with_state_delta({stage.output_key: output})

    @staticmethod
    def _parse_output(stage: LlmStage, text: str) -> Any:
        if stage.output_schema is None:
            return text
        try:
            return stage.output_schema.model_validate_json(
                _strip_code_fence(text)
            ).model_dump()
        except (ValidationError, json.JSONDecodeError) as e:
            logger.warning(f"Stage {stage.name} returned invalid structured output: {e}")
            return None


def _strip_code_fence(text: str) -> str:
    """Remove a ```json fenced block wrapper if the model added one."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()

