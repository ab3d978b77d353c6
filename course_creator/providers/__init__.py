"""LLM provider abstractions for multi-provider support."""

from .base import BaseLLMProvider, ModelResponse, ProviderConfig, ToolCall, ToolSpec
from .registry import ProviderRegistry

__all__ = [
    "BaseLLMProvider",
    "ProviderConfig",
    "ModelResponse",
    "ToolCall",
    "ToolSpec",
    "ProviderRegistry",
]
