"""Typed view over config/agents.yaml."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import yaml

from .. import config


@dataclass(frozen=True)
class AgentSettings:
    name: str
    description: str
    instruction: str
    tools: Tuple[str, ...] = ()
    output_key: Optional[str] = None
    temperature: Optional[float] = None
    model: Optional[str] = None


@dataclass(frozen=True)
class LoopSettings:
    name: str
    max_iterations: int


@dataclass(frozen=True)
class CheckerSettings:
    name: str
    status_key: str
    pass_value: str


@dataclass(frozen=True)
class PipelineSettings:
    name: str
    description: str
    default_model: str
    loop: LoopSettings
    checker: CheckerSettings
    agents: Dict[str, AgentSettings]


def _parse_agents(data: Dict[str, Dict[str, Any]]) -> Dict[str, AgentSettings]:
    return {
        name: AgentSettings(
            name=name,
            description=item.get("description", ""),
            instruction=item["instruction"],
            tools=tuple(item.get("tools", [])),
            output_key=item.get("output_key"),
            temperature=item.get("temperature"),
            model=item.get("model"),
        )
        for name, item in data.items()
    }


def load_pipeline_settings(config_path: Optional[str] = None) -> PipelineSettings:
    """
    Load pipeline settings from YAML.

    Args:
        config_path: Path to agents.yaml (defaults to AGENTS_CONFIG_PATH)

    Returns:
        PipelineSettings
    """
    with open(config_path or config.AGENTS_CONFIG_PATH, "r") as f:
        data = yaml.safe_load(f)

    pipeline = data.get("pipeline", {})
    loop = data.get("loop", {})
    checker = data.get("checker", {})

    return PipelineSettings(
        name=pipeline.get("name", "course_creator_pipeline"),
        description=pipeline.get("description", ""),
        default_model=data["default_model"],
        loop=LoopSettings(
            name=loop.get("name", "research_loop"),
            max_iterations=int(loop.get("max_iterations", config.DEFAULT_MAX_ITERATIONS)),
        ),
        checker=CheckerSettings(
            name=checker.get("name", "checker"),
            status_key=checker.get("status_key", "judge_output"),
            pass_value=checker.get("pass_value", "pass"),
        ),
        agents=_parse_agents(data.get("agents", {})),
    )
