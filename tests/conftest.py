"""Shared fakes for the search collaborator and wall-clock sleeps."""

from typing import Any

import pytest

from research_swarm.config import EngineSettings
from research_swarm.logging import clear_context_fields
from research_swarm.models import SearchConfig, SearchHit
from research_swarm.scoring import QualityScorer
from research_swarm.search import SearchExecutor
from research_swarm.store import SessionStore

LONG_CONTENT = "Detailed reporting on recent developments with figures and quotes from named sources. " * 3


def make_hit(url: str, title: str = "Quantum computing progress report", content: str = LONG_CONTENT, **kwargs: Any):
    return SearchHit(title=title, url=url, content=content, **kwargs)


class FakeSearchClient:
    """Scripted search collaborator.

    ``responses`` maps a query to its hits or to an exception to raise; unknown
    queries return ``default``. The first ``fail_first`` calls raise regardless.
    """

    def __init__(
        self,
        default: list[Any] | None = None,
        responses: dict[str, Any] | None = None,
        fail_first: int = 0,
    ) -> None:
        self.default = default if default is not None else []
        self.responses = responses or {}
        self.fail_first = fail_first
        self.calls: list[tuple[str, SearchConfig]] = []

    async def search(self, query: str, config: SearchConfig) -> Any:
        self.calls.append((query, config))
        if len(self.calls) <= self.fail_first:
            raise ConnectionError("search backend unavailable")
        response = self.responses.get(query, self.default)
        if isinstance(response, Exception):
            raise response
        return response


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(autouse=True)
def _clear_log_context():
    yield
    clear_context_fields()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(_env_file=None, tavily_api_key="test-key")


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def store(settings: EngineSettings) -> SessionStore:
    return SessionStore(history_cap=settings.completed_history_cap)


@pytest.fixture
def make_executor(settings: EngineSettings, sleep: RecordingSleep):
    def factory(client: FakeSearchClient) -> SearchExecutor:
        return SearchExecutor(client, scorer=QualityScorer(), settings=settings, sleep=sleep)

    return factory
