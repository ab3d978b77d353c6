"""FastAPI dependency providers.

Each dependency returns a process-wide instance created on first use.
Tests replace them through ``app.dependency_overrides``.
"""

import logging
from typing import Optional

from . import config
from .pipeline.settings import PipelineSettings, load_pipeline_settings
from .providers import ProviderRegistry
from .reasoning import ProviderReasoningService, ReasoningService
from .search import SearchManager
from .sessions import BaseSessionService, InMemorySessionService
from .tools import default_tool_registry

logger = logging.getLogger(__name__)

_session_service: Optional[BaseSessionService] = None
_reasoning_service: Optional[ReasoningService] = None
_pipeline_settings: Optional[PipelineSettings] = None


def get_session_service() -> BaseSessionService:
    """
    Shared session store for this process.

    Sessions live only as long as the process; every request sees the
    same store, so a stream can be resumed with the same session id.
    """
    global _session_service

    if _session_service is None:
        _session_service = InMemorySessionService()
        logger.info("Session service initialized (in-memory)")

    return _session_service


def get_pipeline_settings() -> PipelineSettings:
    global _pipeline_settings

    if _pipeline_settings is None:
        _pipeline_settings = load_pipeline_settings(config.AGENTS_CONFIG_PATH)
        logger.info(f"Loaded pipeline settings from {config.AGENTS_CONFIG_PATH}")

    return _pipeline_settings


def build_reasoning_service() -> ProviderReasoningService:
    """
    Wire LLM providers and the search tool from the YAML config files.

    Returns:
        ProviderReasoningService over every provider with a usable key
    """
    providers = ProviderRegistry()
    providers.load_providers(config.PROVIDERS_CONFIG_PATH)
    if not providers.get_all_providers():
        logger.warning("No LLM providers configured; runs will fail at the first stage")

    search_manager = SearchManager(config.SEARCH_CONFIG_PATH)
    return ProviderReasoningService(providers, default_tool_registry(search_manager))


def get_reasoning_service() -> ReasoningService:
    global _reasoning_service

    if _reasoning_service is None:
        _reasoning_service = build_reasoning_service()
        logger.info("Reasoning service initialized")

    return _reasoning_service


def reset_dependencies() -> None:
    """Drop the shared instances (used between tests)."""
    global _session_service, _reasoning_service, _pipeline_settings

    _session_service = None
    _reasoning_service = None
    _pipeline_settings = None
