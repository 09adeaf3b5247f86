"""Query planning: subject/keyword extraction and broad-to-narrow query generation.

Every template starts from the bare subject and appends qualifiers one step at a
time (context word, domain phrase, then a recency or analysis qualifier), so the
first query of a batch is always the broadest.
"""

import re
from collections.abc import Callable

from research_swarm.models import TaskSpec

FALLBACK_SUBJECT = "research topic"
MIN_QUERIES = 2
MAX_QUERIES = 8
MAX_KEYWORDS = 5

CAPITALISED_STOPWORDS = frozenset({"The", "A", "An", "In", "On", "At", "For", "To", "From", "With", "By"})

SUBJECT_STOPWORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
        "about", "into", "through", "during", "before", "after", "above", "below", "up", "down",
        "out", "off", "over", "under", "again", "further", "then", "once",
    }
)  # fmt: skip

KEYWORD_STOPWORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
        "about", "research", "analyze", "investigate", "study", "explore", "comprehensive",
        "covering", "detailed", "overview", "from", "that", "this", "their", "what", "which",
    }
)  # fmt: skip

_KEYWORD_SPLIT = re.compile(r"[\s,.\-]+")
_EDGE_PUNCTUATION = "\"'()[]{}:;!?,."

QueryTemplate = Callable[[str, list[str]], list[str]]


def _clean(word: str) -> str:
    return word.strip(_EDGE_PUNCTUATION)


def main_subject(objective: str) -> str:
    """Pick a short subject: proper nouns first, then important words. Never empty."""
    words = [w for w in (_clean(w) for w in objective.split()) if w]
    if not words:
        return FALLBACK_SUBJECT

    proper_nouns = [w for w in words if len(w) > 2 and w[0].isupper() and w not in CAPITALISED_STOPWORDS]
    if proper_nouns:
        return " ".join(proper_nouns[:2])

    important = [w for w in words if len(w) > 3 and w.lower() not in SUBJECT_STOPWORDS]
    if important:
        return " ".join(important[:2])

    return " ".join(words[:2])


def keywords(objective: str) -> list[str]:
    """Up to five lowercased, stopword-filtered words longer than three characters."""
    found: list[str] = []
    for token in _KEYWORD_SPLIT.split(objective.lower()):
        word = _clean(token)
        if len(word) > 3 and word not in KEYWORD_STOPWORDS and word not in found:
            found.append(word)
        if len(found) == MAX_KEYWORDS:
            break
    return found


def _broadening(*qualifiers: str) -> QueryTemplate:
    """Template yielding the bare subject followed by one query per qualifier."""

    def template(subject: str, _keywords: list[str]) -> list[str]:
        return [subject, *(f"{subject} {qualifier}" for qualifier in qualifiers)]

    return template


def generic_template(subject: str, kws: list[str]) -> list[str]:
    """Four-step broadening built from the objective's own keywords."""
    return [
        subject,
        f"{subject} {kws[0] if kws else 'overview'}",
        f"{subject} {' '.join(kws[:2])} analysis",
        f"{subject} {' '.join(kws[:3])} latest developments",
    ]


ROLE_TEMPLATES: dict[str, QueryTemplate] = {
    "historical_researcher": _broadening(
        "history",
        "history timeline formation origins",
        "historical events major milestones",
        "founding leaders key historical figures",
        "important dates chronology historical development",
    ),
    "political_analyst": _broadening(
        "politics",
        "government system political structure",
        "current leadership political parties",
        "political affairs elections latest developments",
    ),
    "economic_researcher": _broadening(
        "economy",
        "economy GDP economic indicators statistics",
        "major industries economic sectors trade exports",
        "economic challenges growth outlook latest",
    ),
    "geographic_analyst": _broadening(
        "geography",
        "geography climate regions location",
        "population demographics statistics data",
        "major cities ethnic composition population breakdown",
    ),
    "international_relations_expert": _broadening(
        "foreign policy",
        "foreign policy international relations",
        "diplomatic relationships neighboring countries",
        "international agreements treaties organizations membership",
        "regional role international affairs diplomacy analysis",
    ),
    "market_researcher": _broadening(
        "market",
        "market size industry analysis",
        "competitive landscape market share data",
        "market trends latest analysis",
    ),
    "technical_analyst": _broadening(
        "technology",
        "technical specifications features",
        "technical limitations challenges details",
        "technical implementation performance analysis",
    ),
    "industry_expert": _broadening(
        "industry",
        "regulations standards guidelines",
        "industry best practices compliance",
        "industry challenges opportunities outlook",
    ),
    "competitive_analyst": _broadening(
        "competitors",
        "competitors competitive analysis",
        "market share positioning differentiation",
        "competitive strategy advantages weaknesses",
    ),
    "trend_analyst": _broadening(
        "trends",
        "future trends predictions forecasts",
        "emerging developments innovations",
        "future outlook expert analysis latest",
    ),
}


def template_for(role: str) -> QueryTemplate:
    return ROLE_TEMPLATES.get(role, generic_template)


def _normalise(query: str) -> str:
    return " ".join(query.split())


def _dedupe(candidates: list[str]) -> list[str]:
    queries: list[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        query = _normalise(candidate)
        if query and query.lower() not in seen:
            seen.add(query.lower())
            queries.append(query)
    return queries


def generate_queries(task: TaskSpec) -> list[str]:
    """Ordered, deduplicated search strings for a task (2 to estimated_queries + 1)."""
    subject = main_subject(task.objective)
    kws = keywords(task.objective)
    limit = max(MIN_QUERIES, min(MAX_QUERIES, task.estimated_queries + 1))

    queries = _dedupe(template_for(task.role)(subject, kws))
    if len(queries) < MIN_QUERIES:
        queries = _dedupe(queries + generic_template(subject, kws))

    return queries[:limit]
