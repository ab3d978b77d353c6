"""Tavily: a search API that returns page extracts tuned for LLM prompts."""

from typing import Any, Dict, List

from .base import BaseSearchProvider, SearchRequest, SearchResult


class TavilyProvider(BaseSearchProvider):

    default_url = "https://api.tavily.com/search"

    def build_request(self, query: str, num_results: int) -> SearchRequest:
        return SearchRequest(
            method="POST",
            url=self.api_url,
            headers={"Authorization": f"Bearer {self.config.api_key}"},
            body={
                "query": query,
                "max_results": num_results,
                "search_depth": "basic",
                "include_images": False,
                "include_answer": False,
            },
        )

    def parse_results(self, data: Dict[str, Any]) -> List[SearchResult]:
        return [
            SearchResult(
                title=item.get("title", ""),
                url=item.get("url", ""),
                snippet=item.get("content", ""),
                source="tavily",
                published_date=item.get("published_date"),
                relevance_score=item.get("score"),
            )
            for item in data.get("results", [])
        ]

    def get_provider_name(self) -> str:
        return "Tavily"
