"""Anthropic direct API provider implementation."""

import json
from typing import Any, Dict, List, Optional, Tuple

from anthropic import AsyncAnthropic, APIError

from ..exceptions import ProviderError
from .base import BaseLLMProvider, ModelResponse, ProviderConfig, ToolCall, ToolSpec


def to_anthropic_messages(
    messages: List[Dict[str, Any]],
) -> Tuple[Optional[str], List[Dict[str, Any]]]:
    """
    Convert OpenAI-shaped chat messages to Anthropic's format.

    System messages are folded into the ``system`` parameter, assistant tool
    calls become ``tool_use`` blocks and ``tool`` messages become
    ``tool_result`` blocks on a user turn.

    Returns:
        Tuple of (system prompt or None, message list)
    """
    system_parts: List[str] = []
    converted: List[Dict[str, Any]] = []

    for message in messages:
        role = message["role"]
        if role == "system":
            system_parts.append(message["content"])
        elif role == "tool":
            block = {
                "type": "tool_result",
                "tool_use_id": message["tool_call_id"],
                "content": message["content"],
            }
            if converted and converted[-1]["role"] == "user" and isinstance(
                converted[-1]["content"], list
            ):
                converted[-1]["content"].append(block)
            else:
                converted.append({"role": "user", "content": [block]})
        elif role == "assistant" and message.get("tool_calls"):
            blocks: List[Dict[str, Any]] = []
            if message.get("content"):
                blocks.append({"type": "text", "text": message["content"]})
            for call in message["tool_calls"]:
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": call["id"],
                        "name": call["function"]["name"],
                        "input": json.loads(call["function"]["arguments"] or "{}"),
                    }
                )
            converted.append({"role": "assistant", "content": blocks})
        else:
            converted.append({"role": role, "content": message["content"]})

    system = "\n\n".join(system_parts) if system_parts else None
    return system, converted


class AnthropicProvider(BaseLLMProvider):
    """Anthropic direct API provider."""

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        self.client = AsyncAnthropic(api_key=config.api_key, timeout=config.timeout)

    async def query(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        tools: Optional[List[ToolSpec]] = None,
        json_output: bool = False,
    ) -> ModelResponse:
        """
        Query Anthropic model via direct API.

        Anthropic has no JSON response mode; ``json_output`` relies on the
        instruction the caller already put in the prompt.

        Args:
            messages: List of message dicts
            model: Model identifier (e.g., "claude-sonnet-4-5")
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate
            tools: Tools the model may call
            json_output: Ignored (see above)

        Returns:
            ModelResponse with content and metadata
        """
        system, converted = to_anthropic_messages(messages)

        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": converted,
            "temperature": temperature if temperature is not None else 0.7,
            "max_tokens": max_tokens if max_tokens is not None else 4096,
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = [
                {
                    "name": t.name,
                    "description": t.description,
                    "input_schema": t.parameters,
                }
                for t in tools
            ]

        try:
            response = await self.client.messages.create(**kwargs)
        except APIError as e:
            raise ProviderError("anthropic", str(e)) from e

        texts = []
        tool_calls = []
        for block in response.content:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(id=block.id, name=block.name, arguments=dict(block.input))
                )

        return ModelResponse(
            content="".join(texts) or None,
            tool_calls=tool_calls,
            model=response.model,
            prompt_tokens=response.usage.input_tokens,
            completion_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
        )
