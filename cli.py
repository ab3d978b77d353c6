#!/usr/bin/env python
"""CLI entry point for the course creator pipeline."""

import asyncio
import json
import os
from pathlib import Path
from typing import List, Optional

import click
import yaml

from course_creator import config
from course_creator.config import configure_logging
from course_creator.dependencies import build_reasoning_service
from course_creator.pipeline.course_creator import build_course_creator
from course_creator.pipeline.events import Content, Event
from course_creator.runner import PipelineRunner
from course_creator.sessions import InMemorySessionService


def describe_event(event: Event) -> List[str]:
    """Console lines for one pipeline event."""
    author = event.author or "system"
    if event.is_error:
        return [f"- [{author}] error: {event.error_message}"]

    lines = []
    if event.text:
        lines.append(f"- [{author}] {event.text}")
    for call in event.function_calls:
        lines.append(f"- [{author}] -> tool call: {call.name}")
    for response in event.function_responses:
        lines.append(f"- [{author}] <- tool response: {response.name}")
    if event.actions.escalate:
        lines.append(f"- [{author}] escalating to parent agent")
    if not lines and author != "user":
        lines.append(f"- [{author}] (no text)")
    return lines


async def run_pipeline(
    query: str,
    user_id: str,
    session_id: str,
    model: Optional[str] = None,
    max_iterations: Optional[int] = None,
    reasoning=None,
) -> str:
    """Run the pipeline in-process, echoing events. Returns the last text seen."""
    session_service = InMemorySessionService()
    await session_service.create_session(config.APP_NAME, user_id, session_id)

    runner = PipelineRunner(
        config.APP_NAME,
        build_course_creator(model=model, max_iterations=max_iterations),
        session_service,
        reasoning or build_reasoning_service(),
    )

    click.echo("--- Running pipeline ---")
    last_text = ""
    last_snapshot = ""
    async for event in runner.run(user_id, session_id, Content.from_text(query, role="user")):
        if event.text:
            last_text = event.text
        for line in describe_event(event):
            click.echo(line)

        session = await session_service.get_session(config.APP_NAME, user_id, session_id)
        snapshot = session.state.get(config.SNAPSHOT_STATE_KEY) if session else None
        snapshot_str = json.dumps(snapshot) if snapshot else ""
        if snapshot_str and snapshot_str != last_snapshot:
            click.echo(f"- [state] {config.SNAPSHOT_STATE_KEY} = {snapshot_str}")
            last_snapshot = snapshot_str

    click.echo("--- Pipeline Result ---")
    click.echo(last_text)
    return last_text


@click.group()
@click.option("--log-level", type=str, default=None, help="Override LOG_LEVEL")
def cli(log_level: Optional[str]):
    """Course Creator - research, judge and check in a loop until approved."""
    configure_logging(log_level or "WARNING")


@cli.command()
@click.argument("query", default=config.DEFAULT_QUERY)
@click.option("--user-id", type=str, default="user-1", help="Session owner")
@click.option("--session-id", type=str, default="session-1", help="Session id")
@click.option("--model", type=str, default=None, help="Model id for every LLM stage")
@click.option(
    "--max-iterations",
    type=click.IntRange(1, 10),
    default=None,
    help="Research loop bound (default: from config/agents.yaml)",
)
def run(
    query: str,
    user_id: str,
    session_id: str,
    model: Optional[str],
    max_iterations: Optional[int],
):
    """Run the course creator pipeline once and print every event."""
    asyncio.run(
        run_pipeline(
            query,
            user_id,
            session_id,
            model=model,
            max_iterations=max_iterations,
        )
    )


@cli.command()
@click.option("--host", type=str, default="0.0.0.0", help="Bind address")
@click.option("--port", type=int, default=config.BACKEND_PORT, help="Bind port")
def serve(host: str, port: int):
    """Start the HTTP API (sessions + SSE run stream)."""
    import uvicorn

    click.echo(f"API listening on {host}:{port}")
    uvicorn.run("course_creator.main:app", host=host, port=port)


@cli.command()
def status():
    """Show configuration and which API keys are present."""
    click.echo("Course Creator Status")
    click.echo("=" * 40)
    click.echo(f"Working Directory: {Path.cwd()}")
    click.echo(f"App name: {config.APP_NAME}")
    click.echo(f"Agents config: {config.AGENTS_CONFIG_PATH}")

    for label, path in (
        ("Provider", config.PROVIDERS_CONFIG_PATH),
        ("Search provider", config.SEARCH_CONFIG_PATH),
    ):
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        entries = data.get("providers", data)
        for provider_id, settings in entries.items():
            if not isinstance(settings, dict):
                continue
            key_env = settings.get("api_key_env", "")
            if os.getenv(key_env):
                click.echo(f"✓ {label} {provider_id}: {key_env} configured")
            else:
                click.echo(f"✗ {label} {provider_id}: {key_env} missing")


if __name__ == "__main__":
    cli()
