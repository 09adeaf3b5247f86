"""Search execution: adaptive per-query config, retries with backoff, quality filtering."""

import asyncio
import re
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, date, datetime
from typing import Any, Protocol

from pydantic import ValidationError

from research_swarm.config import EngineSettings, get_settings
from research_swarm.exceptions import QueryFailure
from research_swarm.logging import get_logger
from research_swarm.models import SearchConfig, SearchDepth, SearchHit, SearchMetadata, SearchOutcome
from research_swarm.retry import Sleep, exponential_backoff, retry
from research_swarm.scoring import QualityScorer

log = get_logger("research_swarm.search")

BASIC_MAX_RESULTS = 6
ADVANCED_MAX_RESULTS = 4


class SearchClient(Protocol):
    """The external web-search collaborator. May raise on any failure."""

    async def search(self, query: str, config: SearchConfig) -> Sequence[SearchHit | Mapping[str, Any]]: ...


def _coerce_hit(item: Any) -> SearchHit | None:
    """One raw hit as a ``SearchHit``; missing fields become empty, unusable items are skipped."""
    if isinstance(item, SearchHit):
        return item
    if not isinstance(item, Mapping):
        log.warning("search.hit.rejected", error=f"expected a mapping, got {type(item).__name__}")
        return None
    try:
        return SearchHit.model_validate({key: value for key, value in item.items() if value is not None})
    except ValidationError as e:
        log.warning("search.hit.rejected", error=str(e))
        return None


def _coerce_hits(raw: Any) -> list[SearchHit]:
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        raise TypeError(f"invalid search response format: expected a list, got {type(raw).__name__}")
    return [hit for hit in map(_coerce_hit, raw) if hit is not None]


BREAKING_MARKERS = ("breaking", "urgent", "latest", "current")
FAST_MOVING_MARKERS = ("crypto", "politics", "election", "recent")
HISTORICAL_MARKERS = ("history", "historical", "ancient", "founding")

_WORDS = re.compile(r"[a-z0-9]+")


def _year_ago(today: date) -> date:
    try:
        return today.replace(year=today.year - 1)
    except ValueError:
        return today.replace(year=today.year - 1, day=28)


def date_filter(query: str, now: datetime) -> date | None:
    """Earliest publication date worth searching for ``query``, or None for no limit.

    Breaking and fast-moving topics stay within the current calendar year. Historical
    topics are not limited; anything else looks back twelve months.
    """
    lowered = query.lower()
    words = set(_WORDS.findall(lowered))
    today = now.date()

    if any(marker in lowered for marker in BREAKING_MARKERS):
        return date(today.year, 1, 1)
    if "ai" in words or str(today.year) in words or any(marker in lowered for marker in FAST_MOVING_MARKERS):
        return date(today.year, 1, 1)
    if any(marker in lowered for marker in HISTORICAL_MARKERS):
        return None
    return _year_ago(today)


class SearchExecutor:
    """Runs single queries against a :class:`SearchClient`; never raises for search failures."""

    def __init__(
        self,
        client: SearchClient,
        scorer: QualityScorer | None = None,
        settings: EngineSettings | None = None,
        sleep: Sleep = asyncio.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.client = client
        self.scorer = scorer or QualityScorer()
        self.settings = settings or get_settings()
        self._sleep = sleep
        self._now = now
        self._backoff = exponential_backoff(self.settings.backoff_base_seconds)

    def search_config(self, position_index: int, batch_size: int, query: str = "") -> SearchConfig:
        """Broad ``basic`` search for the first query or small batches, ``advanced`` otherwise."""
        depth: SearchDepth = "basic" if position_index == 0 or batch_size <= 2 else "advanced"
        return SearchConfig(
            search_depth=depth,
            max_results=BASIC_MAX_RESULTS if depth == "basic" else ADVANCED_MAX_RESULTS,
            timeout_ms=self.settings.search_timeout_ms,
            published_after=date_filter(query, self._now()),
        )

    async def execute(
        self,
        query: str,
        position_index: int,
        batch_size: int = 1,
        max_retries: int | None = None,
    ) -> SearchOutcome:
        retries = self.settings.max_retries if max_retries is None else max_retries
        config = self.search_config(position_index, batch_size, query)

        async def attempt() -> list[SearchHit]:
            async with asyncio.timeout(config.timeout_ms / 1000):
                raw = await self.client.search(query, config)
            return _coerce_hits(raw)

        result = await retry(attempt, max_attempts=retries + 1, backoff=self._backoff, sleep=self._sleep)

        if not result.succeeded:
            reason = str(result.error) or type(result.error).__name__
            failure = QueryFailure(query=query, attempts=result.attempts, reason=reason)
            log.warning("search.query.failed", query=query, attempts=result.attempts, error=reason)
            return SearchOutcome(
                query=query,
                error=str(failure),
                metadata=SearchMetadata(
                    attempts=result.attempts,
                    search_depth=config.search_depth,
                    query_index=position_index,
                ),
            )

        hits = result.value or []
        ranked = self.scorer.top_results(hits, query, limit=self.settings.results_per_query)
        log.info(
            "search.query.completed",
            query=query,
            attempts=result.attempts,
            original_count=len(hits),
            filtered_count=len(ranked),
            search_depth=config.search_depth,
        )
        return SearchOutcome(
            query=query,
            results=ranked,
            metadata=SearchMetadata(
                attempts=result.attempts,
                original_count=len(hits),
                filtered_count=len(ranked),
                search_depth=config.search_depth,
                query_index=position_index,
            ),
        )
