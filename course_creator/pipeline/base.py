"""Stage variants and the single dispatch that runs them.

A stage is pure data. ``run_stage`` walks the tree depth first and yields
events lazily; one child's sequence is drained before the next child starts,
so delivery order always equals production order.
"""

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Iterator, Optional, Tuple, Type

from pydantic import BaseModel

from ..exceptions import DelegationError
from .context import JUDGE_OUTPUT, InvocationContext
from .events import Content, Event, EventActions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stage:
    """Base for all stage variants. Stages hold no run-scoped data."""

    name: str

    @property
    def sub_stages(self) -> Tuple["Stage", ...]:
        return ()

    @property
    def output_key(self) -> Optional[str]:
        return None

    def run(self, ctx: InvocationContext) -> AsyncIterator[Event]:
        return run_stage(self, ctx)


@dataclass(frozen=True)
class LlmStage(Stage):
    """Leaf stage: delegates to the reasoning capability."""

    model: str = ""
    instruction: str = ""
    description: str = ""
    tools: Tuple[str, ...] = ()
    output_schema: Optional[Type[BaseModel]] = None
    output_key: Optional[str] = None
    temperature: Optional[float] = None


@dataclass(frozen=True)
class SequentialStage(Stage):
    """Runs each child in order, adding no events of its own."""

    stages: Tuple[Stage, ...] = ()
    description: str = ""

    @property
    def sub_stages(self) -> Tuple[Stage, ...]:
        return self.stages


@dataclass(frozen=True)
class LoopStage(Stage):
    """Repeats its body until a child escalates or max_iterations passes run."""

    stages: Tuple[Stage, ...] = ()
    max_iterations: int = 3

    def __post_init__(self):
        if self.max_iterations < 1:
            raise ValueError(
                f"LoopStage '{self.name}' needs max_iterations >= 1, got {self.max_iterations}"
            )

    @property
    def sub_stages(self) -> Tuple[Stage, ...]:
        return self.stages


@dataclass(frozen=True)
class CheckerStage(Stage):
    """Deterministic escalation check over the status written earlier in this run."""

    status_key: str = str(JUDGE_OUTPUT)
    pass_value: str = "pass"
    approved_message: str = "Research approved. Moving to content creation."
    retry_message: str = "Research failed quality check. Retrying..."


def walk_stages(stage: Stage) -> Iterator[Stage]:
    """Yield every stage in the tree, depth first, parent before children."""
    yield stage
    for child in stage.sub_stages:
        yield from walk_stages(child)


async def run_stage(stage: Stage, ctx: InvocationContext) -> AsyncIterator[Event]:
    """Run any stage variant, yielding its events as they are produced."""
    if isinstance(stage, LlmStage):
        runner = _run_llm
    elif isinstance(stage, SequentialStage):
        runner = _run_sequential
    elif isinstance(stage, LoopStage):
        runner = _run_loop
    elif isinstance(stage, CheckerStage):
        runner = _run_checker
    else:
        raise TypeError(f"Unknown stage type: {type(stage).__name__}")

    async for event in runner(stage, ctx):
        yield event


async def _run_llm(stage: LlmStage, ctx: InvocationContext) -> AsyncIterator[Event]:
    try:
        async for event in ctx.reasoning.invoke(stage, ctx):
            yield event
    except DelegationError:
        raise
    except Exception as e:
        logger.error(f"Stage {stage.name} delegation failed: {e}", exc_info=True)
        raise DelegationError(stage.name, e) from e


async def _run_sequential(
    stage: SequentialStage, ctx: InvocationContext
) -> AsyncIterator[Event]:
    for child in stage.stages:
        async for event in run_stage(child, ctx):
            yield event


async def _run_loop(stage: LoopStage, ctx: InvocationContext) -> AsyncIterator[Event]:
    iteration = 0
    while iteration < stage.max_iterations:
        logger.debug(f"Loop {stage.name}: Running({iteration})")
        for child in stage.stages:
            async for event in run_stage(child, ctx):
                yield event
                if event.actions.escalate:
                    logger.info(
                        f"Loop {stage.name}: Escalated by {event.author} "
                        f"after {iteration + 1} pass(es)"
                    )
                    return
        iteration += 1

    logger.warning(
        f"Loop {stage.name}: Exhausted after {stage.max_iterations} pass(es) "
        f"without escalation"
    )


async def _run_checker(
    stage: CheckerStage, ctx: InvocationContext
) -> AsyncIterator[Event]:
    status = ctx.get(stage.status_key)
    if isinstance(status, dict):
        status = status.get("status")

    if status == stage.pass_value:
        yield Event(
            author=stage.name,
            invocation_id=ctx.invocation_id,
            content=Content.from_text(stage.approved_message),
            actions=EventActions(escalate=True),
        )
        return

    yield Event(
        author=stage.name,
        invocation_id=ctx.invocation_id,
        content=Content.from_text(stage.retry_message),
    )
