"""Routes prefixed model ids (``provider:model``) to loaded LLM backends."""

import logging
import os
from typing import Any, Dict, List, Optional, Tuple, Type

import yaml

from .anthropic import AnthropicProvider
from .base import BaseLLMProvider, ModelResponse, ProviderConfig, ToolSpec
from .custom_openai import CustomOpenAIProvider
from .openrouter import OpenRouterProvider

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "openrouter"

PROVIDER_CLASSES: Dict[str, Type[BaseLLMProvider]] = {
    "openrouter": OpenRouterProvider,
    "anthropic": AnthropicProvider,
    "custom_openai": CustomOpenAIProvider,
}


def provider_config_from_entry(provider_id: str, entry: Dict[str, Any]) -> ProviderConfig:
    """Build a ``ProviderConfig`` from one ``config/providers.yaml`` entry."""
    key_env = entry.get("api_key_env")
    return ProviderConfig(
        provider_id=provider_id,
        api_key=os.getenv(key_env) if key_env else None,
        base_url=entry.get("base_url"),
        timeout=entry.get("timeout", 120.0),
        enabled=entry.get("enabled", True),
    )


class ProviderRegistry:
    """
    The LLM backends a process can reach.

    Stage models are written as ``provider:model``; a bare model name goes to
    OpenRouter, which fronts most hosted models.
    """

    def __init__(self):
        self._providers: Dict[str, BaseLLMProvider] = {}

    def load_providers(self, config_path: str) -> None:
        """
        Load every enabled backend with a usable key from ``config_path``.

        Raises:
            ValueError: If the file names a backend this package lacks
        """
        with open(config_path, "r") as f:
            entries = yaml.safe_load(f) or {}

        for provider_id, entry in entries.items():
            config = provider_config_from_entry(provider_id, entry or {})
            if not config.enabled:
                logger.debug(f"Provider {provider_id} disabled")
                continue

            provider_class = PROVIDER_CLASSES.get(provider_id)
            if provider_class is None:
                raise ValueError(f"Unknown provider: {provider_id}")

            provider = provider_class(config)
            if not provider.validate_key():
                logger.warning(f"Provider {provider_id} has no API key (skipping)")
                continue

            self.register(provider_id, provider)
            logger.info(f"Loaded provider: {provider_id}")

    def register(self, provider_id: str, provider: BaseLLMProvider) -> None:
        self._providers[provider_id] = provider

    def get_provider(self, provider_id: str) -> Optional[BaseLLMProvider]:
        return self._providers.get(provider_id)

    def get_all_providers(self) -> Dict[str, BaseLLMProvider]:
        return dict(self._providers)

    @staticmethod
    def parse_model_id(model_id: str) -> Tuple[str, str]:
        """
        Split ``openrouter:google/gemini-2.5-flash`` into its two halves.

        Raises:
            ValueError: If either half is empty
        """
        provider_id, sep, model_name = model_id.partition(":")
        if not sep:
            return DEFAULT_PROVIDER, model_id
        if not provider_id or not model_name:
            raise ValueError(f"Invalid model ID format: {model_id}")
        return provider_id, model_name

    async def query_model(
        self,
        model_id: str,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        tools: Optional[List[ToolSpec]] = None,
        json_output: bool = False,
    ) -> ModelResponse:
        """
        Raises:
            ValueError: If the model's provider is not loaded
        """
        provider_id, model_name = self.parse_model_id(model_id)
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ValueError(f"Provider not loaded: {provider_id}")

        return await provider.query(
            messages=messages,
            model=model_name,
            temperature=temperature,
            tools=tools,
            json_output=json_output,
        )
