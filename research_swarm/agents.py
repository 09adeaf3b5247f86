"""PydanticAI agent that turns a research plan into worker delegations."""

from functools import lru_cache
from typing import Any

from pydantic_ai import Agent

from research_swarm.config import get_settings
from research_swarm.models import DelegationPlan

DELEGATION_INSTRUCTIONS = """You are the lead researcher of a team of specialised workers.
Given a research query, its complexity assessment and a worker budget, split the work
into at most that many worker tasks.
For every task provide:
- role: a short snake_case specialist name (e.g. market_researcher, technical_analyst,
  historical_researcher, political_analyst, economic_researcher, trend_analyst)
- objective: a specific, focused research objective
- output_format: the structure the findings should take
- task_boundaries: what this worker must NOT research, so tasks do not overlap
- preferred_sources: the kinds of sources to prefer
- estimated_queries: between 2 and 8 searches
Give every task a distinct role. Keep objectives concrete enough to search for."""


def create_delegation_agent(model: Any = None) -> Agent[None, DelegationPlan]:
    """Uncached factory - use with TestModel for tests."""
    return Agent(
        model or get_settings().delegation_model,
        instructions=DELEGATION_INSTRUCTIONS,
        output_type=DelegationPlan,
        name="delegation_agent",
    )


@lru_cache(maxsize=1)
def get_delegation_agent(model: str | None = None) -> Agent[None, DelegationPlan]:
    """Cached getter for production."""
    return create_delegation_agent(model)


def clear_agent_cache() -> None:
    get_delegation_agent.cache_clear()
