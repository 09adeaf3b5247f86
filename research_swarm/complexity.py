"""Query complexity classification and worker budgeting."""

from research_swarm.models import Complexity

SIMPLE_PATTERNS = ("what is", "define", "who is", "when did", "where is", "how many")

ANALYTICAL_KEYWORDS = (
    "analyze",
    "compare",
    "comprehensive",
    "evaluate",
    "assess",
    "multi",
    "across",
    "between",
    "relationship",
    "impact",
    "strategy",
    "landscape",
    "ecosystem",
    "framework",
)

DOMAIN_KEYWORDS = ("market", "industry", "economic", "political", "social", "regulatory")

MAX_SIMPLE_LENGTH = 120
MAX_TOKENS = 15

WORKER_BUDGETS: dict[Complexity, int] = {
    Complexity.SIMPLE: 1,
    Complexity.MODERATE: 3,
    Complexity.COMPLEX: 6,
}

STRATEGIES: dict[Complexity, str] = {
    Complexity.SIMPLE: "Direct fact-finding with single specialized agent",
    Complexity.MODERATE: "Multi-perspective analysis with coordinated subagents",
    Complexity.COMPLEX: "Comprehensive multi-domain research with specialized task division",
}

DEFAULT_ROLES = (
    "market_researcher",
    "technical_analyst",
    "industry_expert",
    "competitive_analyst",
    "trend_analyst",
)

SPECIALIST_FOCUS: dict[str, str] = {
    "market_researcher": "Market size, trends, competitive landscape",
    "technical_analyst": "Technical specifications, capabilities, limitations",
    "industry_expert": "Industry context, regulations, best practices",
    "competitive_analyst": "Competitive positioning, market share, differentiation",
    "trend_analyst": "Future trends, emerging developments, predictions",
}


def classify(query: str) -> Complexity:
    """Map a query to an effort tier. Simple patterns are checked first."""
    lowered = query.lower()

    if any(pattern in lowered for pattern in SIMPLE_PATTERNS):
        return Complexity.SIMPLE

    domain_hits = sum(1 for domain in DOMAIN_KEYWORDS if domain in lowered)
    if (
        any(keyword in lowered for keyword in ANALYTICAL_KEYWORDS)
        or domain_hits >= 2
        or len(query) > MAX_SIMPLE_LENGTH
        or ("and" in lowered and "compare" in lowered)
        or len(lowered.split()) > MAX_TOKENS
    ):
        return Complexity.COMPLEX

    return Complexity.MODERATE


def worker_budget(tier: Complexity, max_workers: int) -> int:
    """Workers to deploy for a tier, clamped to the caller's maximum (1-10)."""
    if not 1 <= max_workers <= 10:
        raise ValueError(f"max_workers must be between 1 and 10, got {max_workers}")
    return min(WORKER_BUDGETS[tier], max_workers)


def classify_with_budget(query: str, max_workers: int) -> tuple[Complexity, int]:
    tier = classify(query)
    return tier, worker_budget(tier, max_workers)


def research_strategy(tier: Complexity) -> str:
    return STRATEGIES[tier]


def default_roles(count: int) -> list[str]:
    """Role names for ``count`` workers, padding with ``specialist_<n>``."""
    return [DEFAULT_ROLES[i] if i < len(DEFAULT_ROLES) else f"specialist_{i + 1}" for i in range(count)]


def specialist_focus(role: str, query: str) -> str:
    return SPECIALIST_FOCUS.get(role, f"Specialized analysis of: {query}")


def describe_plan(query: str, tier: Complexity, budget: int) -> str:
    """Human-readable plan returned to the caller of ``create_plan``."""
    allocation = "\n".join(
        f"{i}. **{role}**\n"
        f"   - Focus: {specialist_focus(role, query)}\n"
        "   - Estimated searches: 3-5\n"
        "   - Output: Key findings with source attribution"
        for i, role in enumerate(default_roles(budget), start=1)
    )
    return (
        f'Research plan for: "{query}"\n\n'
        "**Analysis:**\n"
        f"- Query complexity: {tier.value}\n"
        f"- Recommended workers: {budget}\n"
        f"- Research strategy: {research_strategy(tier)}\n\n"
        "**Worker Allocation:**\n"
        f"{allocation}\n\n"
        "Each worker gets a distinct role and explicit task boundaries to avoid duplicate work."
    )
