"""Quality scoring and ranking of raw search hits."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from urllib.parse import urlparse

from research_swarm.models import ScoredResult, SearchHit

# Ordered: the first matching entry wins
DEFAULT_AUTHORITY_DOMAINS: tuple[tuple[str, float], ...] = (
    (".edu", 0.3),
    (".gov", 0.3),
    (".org", 0.2),
    ("reuters.com", 0.25),
    ("bloomberg.com", 0.25),
    ("wsj.com", 0.25),
    ("ft.com", 0.2),
    ("economist.com", 0.2),
    ("bbc.com", 0.2),
    ("nytimes.com", 0.2),
    ("washingtonpost.com", 0.2),
    ("nature.com", 0.25),
    ("science.org", 0.25),
    ("pnas.org", 0.25),
    ("wikipedia.org", 0.15),
    ("investopedia.com", 0.15),
    ("cnn.com", 0.1),
    ("theguardian.com", 0.1),
    ("npr.org", 0.15),
    ("brookings.edu", 0.2),
    ("cfr.org", 0.2),
    ("rand.org", 0.2),
)

DEFAULT_SEO_MARKERS: tuple[str, ...] = (
    "10 best",
    "top 10",
    "you won't believe",
    "shocking",
    "click here",
    "amazing",
    "incredible",
    "must-see",
    "viral",
    "trending now",
    "doctors hate",
    "one weird trick",
    "secret",
    "exposed",
)

DEFAULT_MARKETING_PHRASES: tuple[str, ...] = (
    "best solution",
    "revolutionary",
    "game-changing",
    "cutting-edge",
    "state-of-the-art",
    "world-class",
    "premium",
    "exclusive",
    "limited time",
)


@dataclass(frozen=True)
class ScoringTables:
    """Scoring constants; pass a custom instance to ``QualityScorer`` to override."""

    authority_domains: tuple[tuple[str, float], ...] = DEFAULT_AUTHORITY_DOMAINS
    seo_markers: tuple[str, ...] = DEFAULT_SEO_MARKERS
    marketing_phrases: tuple[str, ...] = DEFAULT_MARKETING_PHRASES
    base_score: float = 0.5
    seo_penalty: float = 0.4
    marketing_penalty: float = 0.2
    length_steps: tuple[int, ...] = (1000, 2000)
    length_bonus: float = 0.1
    relevance_weight: float = 0.2
    very_recent_days: int = 30
    very_recent_bonus: float = 0.15
    recent_days: int = 365
    recent_bonus: float = 0.10
    min_content_length: int = 100
    keep_threshold: float = 0.3


DEFAULT_TABLES = ScoringTables()


def extract_domain(url: str) -> str:
    """Lowercased hostname of ``url``, or an empty string when it cannot be parsed."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def parse_published_date(value: str | None) -> datetime | None:
    """Parse ISO-8601 or RFC 2822 dates; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _matches_domain(domain: str, marker: str) -> bool:
    if marker.startswith("."):
        return domain.endswith(marker)
    return domain == marker or domain.endswith(f".{marker}")


class QualityScorer:
    """Pure scoring of search hits against the query that produced them."""

    def __init__(
        self,
        tables: ScoringTables = DEFAULT_TABLES,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.tables = tables
        self._now = now

    def is_eligible(self, hit: SearchHit) -> bool:
        """Hits without a title, a URL, or substantial content never reach ranking."""
        return bool(hit.title) and bool(hit.url) and len(hit.content) >= self.tables.min_content_length

    def authority_bonus(self, url: str) -> float:
        domain = extract_domain(url)
        if not domain:
            return 0.0
        for marker, bonus in self.tables.authority_domains:
            if _matches_domain(domain, marker):
                return bonus
        return 0.0

    def relevance(self, title: str, query: str) -> float:
        """Fraction of the query's longer words (more than 3 chars) found in the title."""
        words = [w for w in query.lower().split() if len(w) > 3]
        if not words:
            return 0.0
        lowered = title.lower()
        return sum(1 for w in words if w in lowered) / len(words)

    def age_days(self, published_date: str | None) -> float | None:
        published = parse_published_date(published_date)
        if published is None:
            return None
        return (self._now() - published).total_seconds() / 86_400

    def is_very_recent(self, published_date: str | None) -> bool:
        age_days = self.age_days(published_date)
        return age_days is not None and age_days < self.tables.very_recent_days

    def recency_bonus(self, published_date: str | None) -> float:
        age_days = self.age_days(published_date)
        if age_days is None:
            return 0.0
        if age_days < self.tables.very_recent_days:
            return self.tables.very_recent_bonus
        if age_days < self.tables.recent_days:
            return self.tables.recent_bonus
        return 0.0

    def score(self, hit: SearchHit, query: str) -> float:
        t = self.tables
        title = hit.title.lower()
        content = hit.content.lower()

        score = t.base_score + self.authority_bonus(hit.url)

        if any(marker in title or marker in content for marker in t.seo_markers):
            score -= t.seo_penalty
        if any(phrase in title or phrase in content for phrase in t.marketing_phrases):
            score -= t.marketing_penalty

        score += t.length_bonus * sum(1 for step in t.length_steps if len(content) > step)
        score += t.relevance_weight * self.relevance(hit.title, query)
        score += self.recency_bonus(hit.published_date)

        return max(0.0, min(1.0, score))

    def filter_and_rank(self, hits: Iterable[SearchHit], query: str) -> list[ScoredResult]:
        """Eligible hits scoring above the keep threshold, best first."""
        scored = [
            ScoredResult(**hit.model_dump(), quality_score=self.score(hit, query))
            for hit in hits
            if self.is_eligible(hit)
        ]
        kept = [r for r in scored if r.quality_score > self.tables.keep_threshold]
        return sorted(kept, key=lambda r: r.quality_score, reverse=True)

    def top_results(self, hits: Iterable[SearchHit], query: str, limit: int = 4) -> list[ScoredResult]:
        return self.filter_and_rank(hits, query)[:limit]
