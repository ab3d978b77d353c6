"""Search backends used by the researcher's ``google_search`` tool.

A backend describes one HTTP request and how to read its response; the
round trip, timeouts and failure handling live here so every backend
degrades the same way: a failed search is logged and yields no sources.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """One source the researcher can cite."""

    title: str
    url: str
    snippet: str
    source: str = "unknown"
    published_date: Optional[str] = None
    relevance_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class SearchConfig:
    """Settings for one backend, read from ``config/search.yaml``."""

    provider_id: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    enabled: bool = True
    timeout: float = 30.0
    max_results: int = 5


@dataclass
class SearchRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    params: Optional[Dict[str, Any]] = None
    body: Optional[Dict[str, Any]] = None


class BaseSearchProvider(ABC):
    """A keyed web search API reachable over HTTP."""

    default_url: str = ""

    def __init__(self, config: SearchConfig):
        self.config = config
        self.api_url = config.base_url or self.default_url

    @abstractmethod
    def build_request(self, query: str, num_results: int) -> SearchRequest:
        ...

    @abstractmethod
    def parse_results(self, data: Dict[str, Any]) -> List[SearchResult]:
        ...

    @abstractmethod
    def get_provider_name(self) -> str:
        ...

    async def search(self, query: str, num_results: int = 5) -> List[SearchResult]:
        """
        Run one query against the backend.

        Args:
            query: What the researcher asked for
            num_results: Upper bound on sources returned

        Returns:
            Parsed sources, or an empty list when the backend fails
        """
        request = self.build_request(query, num_results)
        name = self.get_provider_name()

        try:
            async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                response = await client.request(
                    request.method,
                    request.url,
                    headers=request.headers,
                    params=request.params,
                    json=request.body,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"{name} HTTP error: {e.response.status_code} - {e.response.text}")
            return []
        except httpx.HTTPError as e:
            logger.warning(f"{name} search failed: {e}")
            return []

        results = self.parse_results(data)[:num_results]
        logger.debug(f"{name} returned {len(results)} results for {query!r}")
        return results

    def validate_key(self) -> bool:
        return bool(self.config.api_key)
