"""Pipeline-first architecture for composable LLM stages.

This module provides a pipeline abstraction where:
- Each Stage is plain data (Leaf, Sequential, Loop, Checker)
- run_stage walks the tree and yields Events lazily
- InvocationContext carries the session handle into every stage
- Async execution is supported throughout
"""

from .base import (
    CheckerStage,
    LlmStage,
    LoopStage,
    SequentialStage,
    Stage,
    run_stage,
    walk_stages,
)
from .context import JUDGE_OUTPUT, ContextKey, InvocationContext
from .events import (
    Content,
    Event,
    EventActions,
    FunctionCall,
    FunctionResponse,
    Part,
    create_error_event,
)

__all__ = [
    "Stage",
    "LlmStage",
    "SequentialStage",
    "LoopStage",
    "CheckerStage",
    "run_stage",
    "walk_stages",
    "ContextKey",
    "InvocationContext",
    "JUDGE_OUTPUT",
    "Content",
    "Event",
    "EventActions",
    "FunctionCall",
    "FunctionResponse",
    "Part",
    "create_error_event",
]
