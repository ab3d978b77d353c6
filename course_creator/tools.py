"""Tools the model may call during a stage, keyed by name."""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping

from .exceptions import ToolExecutionError
from .providers.base import ToolSpec
from .search.manager import SearchManager

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Mapping[str, Any]], Awaitable[Dict[str, Any]]]

GOOGLE_SEARCH = "google_search"


@dataclass(frozen=True)
class Tool:
    spec: ToolSpec
    handler: ToolHandler


class ToolRegistry:
    """Resolves tool names declared on stages to callable tools."""

    def __init__(self):
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.spec.name] = tool

    def specs_for(self, names: List[str] | tuple) -> List[ToolSpec]:
        """
        Tool declarations for a stage.

        Raises:
            ToolExecutionError: If a stage names a tool that is not registered
        """
        missing = [n for n in names if n not in self._tools]
        if missing:
            raise ToolExecutionError(f"Unknown tools: {', '.join(missing)}")
        return [self._tools[n].spec for n in names]

    async def execute(self, name: str, args: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Run a tool and return its JSON-serializable result.

        Failures are reported to the model as an ``error`` result rather than
        raised, so the model can recover in its next turn.
        """
        tool = self._tools.get(name)
        if tool is None:
            return {"error": f"Unknown tool: {name}"}
        try:
            return await tool.handler(args)
        except ToolExecutionError as e:
            logger.warning(f"Tool {name} failed: {e}")
            return {"error": str(e)}


def search_tool(search_manager: SearchManager) -> Tool:
    """Web search tool backed by the configured search providers."""

    async def handler(args: Mapping[str, Any]) -> Dict[str, Any]:
        query = str(args.get("query", "")).strip()
        if not query:
            raise ToolExecutionError("google_search needs a non-empty 'query'")
        try:
            results = await search_manager.search(query)
        except ValueError as e:
            raise ToolExecutionError(str(e)) from e
        return {"query": query, "results": [r.to_dict() for r in results]}

    return Tool(
        spec=ToolSpec(
            name=GOOGLE_SEARCH,
            description="Search the web and return the most relevant results.",
            parameters={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Search query"},
                },
                "required": ["query"],
            },
        ),
        handler=handler,
    )


def default_tool_registry(search_manager: SearchManager) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(search_tool(search_manager))
    return registry
