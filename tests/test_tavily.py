"""Tests for the Tavily search adapter."""

from datetime import date
from typing import Any

import pytest

from research_swarm.models import SearchConfig, SearchHit
from research_swarm.tavily import TavilySearchClient


class FakeTavily:
    def __init__(self, response: dict[str, Any]) -> None:
        self.response = response
        self.kwargs: dict[str, Any] = {}

    async def search(self, **kwargs: Any) -> dict[str, Any]:
        self.kwargs = kwargs
        return self.response


class TestTavilySearchClient:
    """Tests for result mapping and request parameters."""

    @pytest.mark.asyncio
    async def test__search__maps_results_to_hits(self) -> None:
        fake = FakeTavily(
            {
                "results": [
                    {"title": "Coffee", "url": "https://a.com", "content": "beans", "published_date": "2024-01-01"},
                    {"url": "https://b.com", "title": None},
                ]
            }
        )
        client = TavilySearchClient(client=fake)

        hits = await client.search("coffee", SearchConfig(max_results=5, search_depth="advanced", timeout_ms=30000))

        assert hits == [
            SearchHit(title="Coffee", url="https://a.com", content="beans", published_date="2024-01-01"),
            SearchHit(url="https://b.com"),
        ]

    @pytest.mark.asyncio
    async def test__search__disables_extras_and_passes_config(self) -> None:
        fake = FakeTavily({"results": []})
        client = TavilySearchClient(client=fake)

        hits = await client.search("coffee", SearchConfig(max_results=3, search_depth="basic", timeout_ms=500))

        assert hits == []
        assert fake.kwargs["query"] == "coffee"
        assert fake.kwargs["max_results"] == 3
        assert fake.kwargs["search_depth"] == "basic"
        assert fake.kwargs["timeout"] == 1
        assert not fake.kwargs["include_answer"]
        assert not fake.kwargs["include_images"]
        assert not fake.kwargs["include_raw_content"]
        assert "start_date" not in fake.kwargs

    @pytest.mark.asyncio
    async def test__published_after__sent_as_start_date(self) -> None:
        fake = FakeTavily({"results": []})
        client = TavilySearchClient(client=fake)
        config = SearchConfig(
            max_results=6, search_depth="basic", timeout_ms=30000, published_after=date(2025, 1, 1)
        )

        await client.search("latest coffee prices", config)

        assert fake.kwargs["start_date"] == "2025-01-01"
