"""Brave Search web results."""

from typing import Any, Dict, List

from .base import BaseSearchProvider, SearchRequest, SearchResult


class BraveProvider(BaseSearchProvider):

    default_url = "https://api.search.brave.com/res/v1/web/search"

    def build_request(self, query: str, num_results: int) -> SearchRequest:
        # Brave caps count at 20 per page
        return SearchRequest(
            method="GET",
            url=self.api_url,
            headers={
                "X-Subscription-Token": self.config.api_key or "",
                "Accept": "application/json",
            },
            params={
                "q": query,
                "count": min(num_results, 20),
                "text_decorations": False,
                "result_filter": "web",
            },
        )

    def parse_results(self, data: Dict[str, Any]) -> List[SearchResult]:
        web = data.get("web") or {}
        return [
            SearchResult(
                title=item.get("title", ""),
                url=item.get("url", ""),
                snippet=item.get("description", ""),
                source="brave",
                published_date=item.get("age"),
            )
            for item in web.get("results", [])
        ]

    def get_provider_name(self) -> str:
        return "Brave"
