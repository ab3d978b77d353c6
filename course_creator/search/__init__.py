"""Web search providers backing the researcher's search tool."""

from .base import BaseSearchProvider, SearchConfig, SearchResult
from .manager import SearchManager

__all__ = [
    "BaseSearchProvider",
    "SearchResult",
    "SearchConfig",
    "SearchManager",
]
