"""The reasoning capability leaf stages delegate to.

``ReasoningService`` is the seam between the pipeline and whatever produces
event content. ``ProviderReasoningService`` is the production implementation:
it turns a leaf stage plus the session transcript into chat-completion calls,
runs any tools the model asks for, and yields one event per model turn.
"""

import json
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Protocol

from .exceptions import ToolExecutionError
from .pipeline.events import (
    Content,
    Event,
    FunctionCall,
    FunctionResponse,
    Part,
)
from .providers.base import ModelResponse
from .providers.registry import ProviderRegistry
from .tools import ToolRegistry

if TYPE_CHECKING:
    from .pipeline.base import LlmStage
    from .pipeline.context import InvocationContext

logger = logging.getLogger(__name__)


class ReasoningService(Protocol):
    """Produces the events for one leaf stage invocation."""

    def invoke(
        self, stage: "LlmStage", ctx: "InvocationContext"
    ) -> AsyncIterator[Event]:
        ...


def build_transcript(stage: "LlmStage", ctx: "InvocationContext") -> List[Dict[str, Any]]:
    """
    Render the session log as chat messages from ``stage``'s point of view.

    The stage's own earlier answers become assistant turns; everything other
    stages said is passed in as user-side context, attributed by author.
    Tool exchanges and error events are left out.
    """
    messages: List[Dict[str, Any]] = []
    for event in ctx.session.events:
        if event.partial or event.is_error or not event.is_final_response():
            continue
        text = event.text
        if not text:
            continue
        if event.author == "user":
            messages.append({"role": "user", "content": text})
        elif event.author == stage.name:
            messages.append({"role": "assistant", "content": text})
        else:
            messages.append(
                {"role": "user", "content": f"For context:\n[{event.author}] said: {text}"}
            )
    return messages


def system_prompt(stage: "LlmStage") -> str:
    prompt = stage.instruction
    if stage.output_schema is not None:
        schema = json.dumps(stage.output_schema.model_json_schema())
        prompt += (
            "\n\nRespond with a single JSON object and nothing else. "
            f"It must match this JSON schema:\n{schema}"
        )
    return prompt


class ProviderReasoningService:
    """Reasoning backed by the LLM provider registry and the tool registry."""

    def __init__(
        self,
        providers: ProviderRegistry,
        tools: ToolRegistry,
        max_tool_rounds: int = 5,
    ):
        self.providers = providers
        self.tools = tools
        self.max_tool_rounds = max_tool_rounds

    async def invoke(
        self, stage: "LlmStage", ctx: "InvocationContext"
    ) -> AsyncIterator[Event]:
        messages = [{"role": "system", "content": system_prompt(stage)}]
        messages.extend(build_transcript(stage, ctx))
        tool_specs = self.tools.specs_for(stage.tools) if stage.tools else None

        for _ in range(self.max_tool_rounds + 1):
            response = await self.providers.query_model(
                stage.model,
                messages,
                temperature=stage.temperature,
                tools=tool_specs,
                json_output=stage.output_schema is not None,
            )
            self._log_usage(stage, response)

            if not response.tool_calls:
                content = (
                    Content.from_text(response.content) if response.content else None
                )
                yield Event(
                    author=stage.name, invocation_id=ctx.invocation_id, content=content
                )
                return

            yield Event(
                author=stage.name,
                invocation_id=ctx.invocation_id,
                content=Content(
                    role="model",
                    parts=tuple(
                        Part(
                            function_call=FunctionCall(
                                name=call.name, args=call.arguments, id=call.id
                            )
                        )
                        for call in response.tool_calls
                    ),
                ),
            )

            messages.append(
                {
                    "role": "assistant",
                    "content": response.content,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {
                                "name": call.name,
                                "arguments": json.dumps(call.arguments),
                            },
                        }
                        for call in response.tool_calls
                    ],
                }
            )

            response_parts = []
            for call in response.tool_calls:
                result = await self.tools.execute(call.name, call.arguments)
                response_parts.append(
                    Part(
                        function_response=FunctionResponse(
                            name=call.name, response=result, id=call.id
                        )
                    )
                )
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": json.dumps(result),
                    }
                )

            yield Event(
                author=stage.name,
                invocation_id=ctx.invocation_id,
                content=Content(role="user", parts=tuple(response_parts)),
            )

        raise ToolExecutionError(
            f"Stage {stage.name} exceeded {self.max_tool_rounds} tool rounds"
        )

    @staticmethod
    def _log_usage(stage: "LlmStage", response: ModelResponse) -> None:
        logger.debug(
            f"{stage.name} <- {response.model}: "
            f"{len(response.tool_calls)} tool call(s), tokens={response.total_tokens}"
        )

