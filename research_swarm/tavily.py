"""Tavily-backed implementation of the search collaborator."""

from typing import Any

from tavily import AsyncTavilyClient

from research_swarm.config import get_settings
from research_swarm.models import SearchConfig, SearchHit


class TavilySearchClient:
    """Adapts ``AsyncTavilyClient.search`` to the engine's ``SearchClient`` protocol."""

    def __init__(self, api_key: str | None = None, client: Any = None) -> None:
        self._client = client or AsyncTavilyClient(api_key=api_key or get_settings().tavily_api_key)

    async def search(self, query: str, config: SearchConfig) -> list[SearchHit]:
        options: dict[str, Any] = {}
        if config.published_after is not None:
            options["start_date"] = config.published_after.isoformat()

        response = await self._client.search(
            query=query,
            search_depth=config.search_depth,
            max_results=config.max_results,
            include_answer=False,
            include_images=False,
            include_raw_content=False,
            timeout=max(1, config.timeout_ms // 1000),
            **options,
        )
        return [
            SearchHit(
                title=r.get("title") or "",
                url=r.get("url") or "",
                content=r.get("content") or "",
                published_date=r.get("published_date"),
            )
            for r in response.get("results", [])
        ]
