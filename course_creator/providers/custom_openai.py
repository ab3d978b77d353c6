"""Custom OpenAI-compatible endpoint provider."""

from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from ..exceptions import ProviderError
from .base import BaseLLMProvider, ModelResponse, ProviderConfig, ToolCall, ToolSpec


class CustomOpenAIProvider(BaseLLMProvider):
    """Provider for any OpenAI-compatible API endpoint."""

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        self.client = AsyncOpenAI(
            api_key=config.api_key or "dummy-key",
            base_url=config.base_url,
            timeout=config.timeout,
        )

    async def query(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        tools: Optional[List[ToolSpec]] = None,
        json_output: bool = False,
    ) -> ModelResponse:
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature if temperature is not None else 0.7,
            "max_tokens": max_tokens if max_tokens is not None else 4096,
        }
        if tools:
            kwargs["tools"] = [t.to_openai() for t in tools]
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            raise ProviderError("custom_openai", str(e)) from e

        message = response.choices[0].message
        tool_calls = [ToolCall.from_openai(call.model_dump()) for call in message.tool_calls or []]

        return ModelResponse(
            content=message.content,
            tool_calls=tool_calls,
            model=response.model,
            prompt_tokens=response.usage.prompt_tokens if response.usage else None,
            completion_tokens=response.usage.completion_tokens if response.usage else None,
            total_tokens=response.usage.total_tokens if response.usage else None,
        )

    def validate_key(self) -> bool:
        # local OpenAI-compatible servers usually need no key
        return bool(self.config.base_url)
