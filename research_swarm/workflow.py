"""End-to-end research workflow: plan, delegate, wait, synthesize."""

from time import perf_counter
from typing import Any
from uuid import uuid4

from pydantic_ai import Agent

from research_swarm.agents import get_delegation_agent
from research_swarm.complexity import default_roles, specialist_focus
from research_swarm.coordinator import LeadCoordinator
from research_swarm.logging import bind_context_vars, get_logger
from research_swarm.models import DelegationPlan, PlanResult, ReportStyle, Session, TaskSpec

log = get_logger("research_swarm.workflow")


def default_task_specs(query: str, budget: int) -> list[TaskSpec]:
    """One task per default role, used when the delegation agent is unavailable."""
    return [
        TaskSpec(
            role=role,
            objective=query,
            output_format="Key findings with source attribution",
            task_boundaries=f"Stay within: {specialist_focus(role, query)}",
        )
        for role in default_roles(budget)
    ]


def _delegation_prompt(query: str, plan: PlanResult) -> str:
    return (
        f"Research query: {query}\n"
        f"Complexity: {plan.complexity.value}\n"
        f"Worker budget: {plan.worker_budget}\n"
        f"Strategy: {plan.strategy}\n\n"
        f"{plan.description}\n\n"
        f"Create at most {plan.worker_budget} worker tasks."
    )


async def _delegations(
    query: str, plan: PlanResult, delegation_agent: Agent[Any, DelegationPlan] | None
) -> list[TaskSpec]:
    """Task specs chosen by the delegation agent, or the default roles when it is unusable."""
    try:
        _agent = delegation_agent or get_delegation_agent()
    except Exception as e:
        log.error("workflow.delegation.agent_unavailable", error=str(e), error_type=type(e).__name__)
        return default_task_specs(query, plan.worker_budget)

    try:
        result = await _agent.run(_delegation_prompt(query, plan))
    except Exception as e:
        log.warning("workflow.delegation.agent_failed", error=str(e))
        return default_task_specs(query, plan.worker_budget)
    return result.output.tasks[: plan.worker_budget]


async def run_research_workflow(
    query: str,
    *,
    coordinator: LeadCoordinator | None = None,
    delegation_agent: Agent[Any, DelegationPlan] | None = None,
    max_workers: int | None = None,
    style: ReportStyle = "detailed",
) -> Session:
    """Run a research session from query to completed report.

    Args:
        query: Research question to investigate.
        coordinator: Override the default coordinator (for testing).
        delegation_agent: Override the default delegation agent (for testing).
        max_workers: Upper bound on workers, 1-10. Defaults to the configured value.
        style: Report style passed to synthesis.

    Returns:
        The completed Session, including its final report.

    Raises:
        ValueError: When max_workers is outside 1-10.
        PlanningError: When the session becomes unusable mid-run.
        SessionFailure: When report synthesis fails.
    """
    correlation_id = str(uuid4())[:8]
    bind_context_vars(correlation_id=correlation_id, query=query)

    _coordinator = coordinator or LeadCoordinator()
    workflow_start = perf_counter()
    log.info("workflow.started", query=query)

    # Phase 1: Planning
    plan = await _coordinator.create_plan(query, max_workers)
    log.info("workflow.planning.completed", session_id=plan.session_id, worker_budget=plan.worker_budget)

    # Phase 2: Delegation
    phase_start = perf_counter()
    specs = await _delegations(query, plan, delegation_agent)
    for spec in specs:
        await _coordinator.delegate(plan.session_id, spec)
    delegation_ms = int((perf_counter() - phase_start) * 1000)
    log.info("workflow.delegation.completed", duration_ms=delegation_ms, task_count=len(specs))

    # Phase 3: Research
    phase_start = perf_counter()
    progress = await _coordinator.wait_for_workers(plan.session_id)
    research_ms = int((perf_counter() - phase_start) * 1000)
    log.info(
        "workflow.research.completed",
        duration_ms=research_ms,
        complete=progress.complete,
        failed=progress.failed,
        findings=progress.findings,
    )
    if not await _coordinator.min_findings(plan.session_id):
        log.warning(
            "workflow.research.few_findings",
            findings=progress.findings,
            threshold=_coordinator.settings.min_findings_threshold,
        )

    # Phase 4: Synthesis
    await _coordinator.synthesize(plan.session_id, style=style)
    total_ms = int((perf_counter() - workflow_start) * 1000)
    log.info("workflow.completed", total_ms=total_ms)

    return await _coordinator.get_results(plan.session_id)
