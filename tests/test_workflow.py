"""Tests for the end-to-end research workflow."""

from unittest.mock import AsyncMock, patch

import pytest
from conftest import FakeSearchClient, make_hit
from pydantic_ai import Agent
from pydantic_ai.models.test import TestModel

from research_swarm.agents import create_delegation_agent
from research_swarm.config import EngineSettings
from research_swarm.coordinator import LeadCoordinator
from research_swarm.models import DelegationPlan, SessionStatus, TaskSpec, TaskStatus
from research_swarm.store import SessionStore
from research_swarm.workflow import default_task_specs, run_research_workflow

# --- Fixture Factories ---


def _make_delegation_agent(*roles: str) -> Agent[None, DelegationPlan]:
    """Create test agent returning one task per role."""
    plan = DelegationPlan(
        tasks=[TaskSpec(role=role, objective="Coffee exports from Brazil", estimated_queries=2) for role in roles]
    )
    return Agent(TestModel(custom_output_args=plan.model_dump()), output_type=DelegationPlan)


@pytest.fixture
def coordinator(store: SessionStore, settings: EngineSettings, make_executor) -> LeadCoordinator:
    client = FakeSearchClient(default=[make_hit("https://a.com/1"), make_hit("https://www.usda.gov/coffee")])
    return LeadCoordinator(store=store, executor=make_executor(client), settings=settings)


# --- Tests ---


@pytest.mark.asyncio
async def test__full_pipeline__returns_completed_session(coordinator: LeadCoordinator) -> None:
    session = await run_research_workflow(
        "Brazil coffee exports",
        coordinator=coordinator,
        delegation_agent=_make_delegation_agent("market_researcher", "trend_analyst"),
    )

    assert session.status is SessionStatus.COMPLETE
    assert session.query == "Brazil coffee exports"
    assert [r.role for r in session.task_results] == ["market_researcher", "trend_analyst"]
    assert all(r.status is TaskStatus.COMPLETE for r in session.task_results)
    assert "2 successful, 0 failed" in session.final_report


@pytest.mark.asyncio
async def test__agent_tasks__truncated_to_worker_budget(coordinator: LeadCoordinator) -> None:
    session = await run_research_workflow(
        "Brazil coffee exports",
        coordinator=coordinator,
        delegation_agent=_make_delegation_agent("a_role", "b_role", "c_role", "d_role"),
        max_workers=2,
    )

    assert session.plan.target_workers == 2
    assert [r.role for r in session.task_results] == ["a_role", "b_role"]


@pytest.mark.asyncio
async def test__agent_failure__falls_back_to_default_roles(coordinator: LeadCoordinator) -> None:
    agent = _make_delegation_agent("market_researcher")
    agent.run = AsyncMock(side_effect=RuntimeError("model unavailable"))

    session = await run_research_workflow("Brazil coffee exports", coordinator=coordinator, delegation_agent=agent)

    assert session.status is SessionStatus.COMPLETE
    assert [r.role for r in session.task_results] == ["market_researcher", "technical_analyst", "industry_expert"]


@pytest.mark.asyncio
async def test__style__passed_to_synthesis(coordinator: LeadCoordinator) -> None:
    session = await run_research_workflow(
        "Brazil coffee exports",
        coordinator=coordinator,
        delegation_agent=_make_delegation_agent("market_researcher"),
        style="academic",
    )
    assert "## References" in session.final_report


@pytest.mark.asyncio
async def test__invalid_max_workers__raises_value_error(coordinator: LeadCoordinator) -> None:
    with pytest.raises(ValueError):
        await run_research_workflow(
            "Brazil coffee exports",
            coordinator=coordinator,
            delegation_agent=_make_delegation_agent("market_researcher"),
            max_workers=0,
        )


def test__default_task_specs__one_per_role() -> None:
    specs = default_task_specs("tidal power", 6)
    assert [s.role for s in specs][-1] == "specialist_6"
    assert all(s.objective == "tidal power" for s in specs)


@pytest.mark.asyncio
async def test__default_agent__built_by_factory_chooses_tasks(coordinator: LeadCoordinator) -> None:
    plan = DelegationPlan(tasks=[TaskSpec(role="trade_analyst", objective="Coffee exports from Brazil")])
    agent = create_delegation_agent(TestModel(custom_output_args=plan.model_dump()))

    with patch("research_swarm.workflow.get_delegation_agent", return_value=agent):
        session = await run_research_workflow("Brazil coffee exports", coordinator=coordinator)

    assert [r.role for r in session.task_results] == ["trade_analyst"]


@pytest.mark.asyncio
async def test__agent_construction_error__falls_back_to_default_roles(coordinator: LeadCoordinator) -> None:
    with patch("research_swarm.workflow.get_delegation_agent", side_effect=TypeError("bad agent option")):
        session = await run_research_workflow("Brazil coffee exports", coordinator=coordinator)

    assert session.status is SessionStatus.COMPLETE
    assert [r.role for r in session.task_results] == ["market_researcher", "technical_analyst", "industry_expert"]
