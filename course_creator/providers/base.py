"""Provider-neutral chat types shared by every LLM backend.

Messages travel in the OpenAI chat shape (``role``/``content``, assistant
``tool_calls``, ``tool`` results). Backends with another wire format, such
as Anthropic, convert at their own edge.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ProviderConfig:
    provider_id: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 120.0
    enabled: bool = True


@dataclass
class ToolSpec:
    """A tool a stage exposes to its model; ``parameters`` is a JSON schema."""

    name: str
    description: str
    parameters: Dict[str, Any]

    def to_openai(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_openai(cls, raw: Dict[str, Any]) -> "ToolCall":
        """
        Read one entry of an OpenAI ``tool_calls`` list.

        Arguments arrive as a JSON string; a string that does not parse is
        logged and treated as no arguments so the tool can report the problem.
        """
        function = raw.get("function") or {}
        arguments = function.get("arguments") or "{}"
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments)
            except json.JSONDecodeError:
                logger.warning(f"Unparseable tool arguments for {function.get('name')}")
                arguments = {}
        return cls(id=raw.get("id", ""), name=function.get("name", ""), arguments=arguments)


@dataclass
class ModelResponse:
    """One model turn: either final text, tool calls, or both."""

    content: Optional[str]
    tool_calls: List[ToolCall] = field(default_factory=list)
    model: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class BaseLLMProvider(ABC):

    def __init__(self, config: ProviderConfig):
        self.config = config

    @abstractmethod
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
        Run one chat turn.

        Args:
            messages: Transcript in OpenAI chat shape
            model: Model name without the provider prefix
            temperature: Sampling temperature (0-2)
            max_tokens: Completion cap
            tools: Tools the model may call this turn
            json_output: Ask for a single JSON object as the answer

        Raises:
            ProviderError: On transport or API failure
        """

    def validate_key(self) -> bool:
        return bool(self.config.api_key)
