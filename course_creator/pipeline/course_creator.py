"""The course creator stage tree: research -> judge -> checker, in a loop."""

import logging
from typing import Literal, Optional

from pydantic import BaseModel

from .base import CheckerStage, LlmStage, LoopStage, SequentialStage
from .settings import AgentSettings, PipelineSettings, load_pipeline_settings

logger = logging.getLogger(__name__)


class JudgeFeedback(BaseModel):
    """Structured verdict the judge stage must return."""

    status: Literal["pass", "fail"]
    feedback: str


def _llm_stage(
    agent: AgentSettings,
    default_model: str,
    model_override: Optional[str] = None,
    output_schema: Optional[type[BaseModel]] = None,
) -> LlmStage:
    return LlmStage(
        name=agent.name,
        model=model_override or agent.model or default_model,
        instruction=agent.instruction,
        description=agent.description,
        tools=agent.tools,
        output_schema=output_schema,
        output_key=agent.output_key,
        temperature=agent.temperature,
    )


def build_course_creator(
    model: Optional[str] = None,
    max_iterations: Optional[int] = None,
    settings: Optional[PipelineSettings] = None,
) -> SequentialStage:
    """
    Build the course creator pipeline.

    Pipeline flow:
    1. research_loop (up to max_iterations passes)
       a. researcher - gathers facts with the search tool
       b. judge - returns JudgeFeedback, merged into state["judge_output"]
       c. checker - escalates out of the loop when the judge says "pass"

    Args:
        model: Model id override applied to every LLM stage
        max_iterations: Loop bound override
        settings: Pre-loaded settings (defaults to config/agents.yaml)

    Returns:
        Root SequentialStage
    """
    settings = settings or load_pipeline_settings()
    researcher = _llm_stage(
        settings.agents["researcher"], settings.default_model, model
    )
    judge = _llm_stage(
        settings.agents["judge"],
        settings.default_model,
        model,
        output_schema=JudgeFeedback,
    )

    checker = CheckerStage(
        name=settings.checker.name,
        status_key=settings.checker.status_key,
        pass_value=settings.checker.pass_value,
    )

    research_loop = LoopStage(
        name=settings.loop.name,
        stages=(researcher, judge, checker),
        max_iterations=max_iterations or settings.loop.max_iterations,
    )

    logger.debug(
        f"Built {settings.name} with model={model or settings.default_model} "
        f"max_iterations={research_loop.max_iterations}"
    )

    return SequentialStage(
        name=settings.name,
        description=settings.description,
        stages=(research_loop,),
    )
