"""Routes researcher searches to whichever backend has a key."""

import logging
import os
from typing import Any, Dict, Iterator, List, Optional, Type

import yaml

from .base import BaseSearchProvider, SearchConfig, SearchResult
from .brave import BraveProvider
from .tavily import TavilyProvider

logger = logging.getLogger(__name__)

BACKENDS: Dict[str, Type[BaseSearchProvider]] = {
    "tavily": TavilyProvider,
    "brave": BraveProvider,
}


def iter_search_configs(data: Dict[str, Any]) -> Iterator[SearchConfig]:
    """Yield one ``SearchConfig`` per enabled backend entry."""
    max_results = data.get("max_results", 5)
    for provider_id, entry in (data.get("providers") or {}).items():
        if not entry.get("enabled", True):
            continue
        key_env = entry.get("api_key_env")
        yield SearchConfig(
            provider_id=provider_id,
            api_key=os.getenv(key_env) if key_env else None,
            base_url=entry.get("base_url"),
            timeout=entry.get("timeout", 30.0),
            max_results=max_results,
        )


class SearchManager:
    """
    Holds the usable search backends and picks one per query.

    Backends without an API key are skipped at load time; a manager with no
    backends is valid and reports "No search provider available" on use.
    """

    def __init__(self, config_path: Optional[str] = None):
        self._providers: Dict[str, BaseSearchProvider] = {}
        self._default_provider: Optional[str] = None
        self.max_results = 5
        if config_path:
            self._load_config(config_path)

    def _load_config(self, config_path: str) -> None:
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning(f"Search config not found: {config_path} (search disabled)")
            return

        self.max_results = data.get("max_results", 5)
        preferred = data.get("default_provider")

        for search_config in iter_search_configs(data):
            backend = BACKENDS.get(search_config.provider_id)
            if backend is None:
                raise ValueError(f"Unknown search provider: {search_config.provider_id}")

            provider = backend(search_config)
            if not provider.validate_key():
                logger.warning(f"Search provider {search_config.provider_id} has no API key (skipping)")
                continue
            self.register(search_config.provider_id, provider)
            logger.info(f"Loaded search provider: {search_config.provider_id}")

        if preferred in self._providers:
            self._default_provider = preferred

    def register(self, provider_id: str, provider: BaseSearchProvider, default: bool = False) -> None:
        self._providers[provider_id] = provider
        if default or self._default_provider is None:
            self._default_provider = provider_id

    def get_provider(self, provider_id: Optional[str] = None) -> Optional[BaseSearchProvider]:
        provider_id = provider_id or self._default_provider
        if provider_id in self._providers:
            return self._providers[provider_id]
        return next(iter(self._providers.values()), None)

    async def search(
        self,
        query: str,
        provider_id: Optional[str] = None,
        num_results: Optional[int] = None,
    ) -> List[SearchResult]:
        """
        Raises:
            ValueError: If no search provider is available
        """
        provider = self.get_provider(provider_id)
        if provider is None:
            raise ValueError("No search provider available")

        logger.info(f"Searching with {provider.get_provider_name()}: {query}")
        return await provider.search(query, num_results=num_results or self.max_results)

    def get_providers(self) -> List[str]:
        return list(self._providers)
