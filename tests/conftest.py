"""Pytest configuration and shared fixtures for course creator tests.

This module provides:
- Custom markers
- Session service, settings and pipeline fixtures
- A FastAPI test client wired to a scripted reasoning service
"""

import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add project root to Python path to allow imports of cli and course_creator
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from course_creator.dependencies import reset_dependencies  # noqa: E402
from course_creator.pipeline.settings import load_pipeline_settings  # noqa: E402
from course_creator.sessions import InMemorySessionService  # noqa: E402

from tests.fixtures.scripted_reasoning import ScriptedReasoning  # noqa: E402

APP_NAME = "test-app"


# ==================== Pytest Configuration ====================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "unit: mark test as a unit test (fast, isolated)"
    )
    config.addinivalue_line(
        "markers",
        "integration: mark test as an integration test (slower, multiple components)"
    )


# ==================== Environment Fixtures ====================

@pytest.fixture(scope="function", autouse=True)
def isolate_environment():
    """Restore environment variables and drop process singletons after a test."""
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)
    reset_dependencies()


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Provide fake API keys for provider and search registries."""
    env_vars = {
        "OPENROUTER_API_KEY": "test-openrouter-key",
        "ANTHROPIC_API_KEY": "test-anthropic-key",
        "TAVILY_API_KEY": "test-tavily-key",
        "LOG_LEVEL": "ERROR",
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


# ==================== Pipeline Fixtures ====================

@pytest.fixture
def session_service() -> InMemorySessionService:
    return InMemorySessionService()


@pytest_asyncio.fixture
async def session(session_service):
    return await session_service.create_session(APP_NAME, "user-1", "session-1")


@pytest.fixture
def pipeline_settings():
    """Settings from the checked-in config/agents.yaml."""
    return load_pipeline_settings(str(PROJECT_ROOT / "config" / "agents.yaml"))


@pytest.fixture
def scripted_reasoning():
    """Factory for a reasoning fake driven by a per-stage script."""
    def _make(script):
        return ScriptedReasoning(script)
    return _make
