"""OpenRouter provider implementation."""

from typing import Any, Dict, List, Optional

import httpx

from ..exceptions import ProviderError
from .base import BaseLLMProvider, ModelResponse, ProviderConfig, ToolCall, ToolSpec


class OpenRouterProvider(BaseLLMProvider):
    """OpenRouter API provider for multi-model access."""

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        self.api_url = (
            config.base_url or "https://openrouter.ai/api/v1/chat/completions"
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
        """
        Query a model via OpenRouter API.

        Args:
            messages: List of message dicts
            model: OpenRouter model identifier (e.g., "google/gemini-2.5-flash")
            temperature: Sampling temperature (0-2)
            max_tokens: Maximum tokens to generate
            tools: Tools the model may call
            json_output: Request a JSON object response

        Returns:
            ModelResponse with content and metadata
        """
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
        }

        if temperature is not None:
            payload["temperature"] = temperature

        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        if tools:
            payload["tools"] = [t.to_openai() for t in tools]

        if json_output:
            payload["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                response = await client.post(
                    self.api_url, headers=headers, json=payload
                )
                response.raise_for_status()

                data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                "openrouter",
                f"HTTP {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError("openrouter", str(e)) from e

        try:
            message = data["choices"][0]["message"]
        except (KeyError, IndexError) as e:
            raise ProviderError("openrouter", f"malformed response: {data}") from e

        usage = data.get("usage", {})
        return ModelResponse(
            content=message.get("content"),
            tool_calls=[ToolCall.from_openai(c) for c in message.get("tool_calls") or []],
            model=data.get("model"),
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
            total_tokens=usage.get("total_tokens"),
        )
