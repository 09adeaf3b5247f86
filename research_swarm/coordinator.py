"""Lead coordinator: session lifecycle, delegation to workers, and synthesis."""

import asyncio
from datetime import UTC, datetime

from research_swarm.complexity import classify_with_budget, describe_plan, research_strategy
from research_swarm.config import EngineSettings, get_settings
from research_swarm.exceptions import InvalidTransitionError, PlanningError, SessionFailure
from research_swarm.logging import bound_context, get_logger
from research_swarm.models import (
    DelegationResult,
    PlanResult,
    ReportStyle,
    ResearchPlan,
    Session,
    SessionListing,
    SessionProgress,
    SessionStatus,
    SessionSummary,
    Task,
    TaskResult,
    TaskSpec,
    TaskStatus,
)
from research_swarm.search import SearchExecutor
from research_swarm.store import SessionStore
from research_swarm.synthesis import build_report, collect, dedupe_sources
from research_swarm.tavily import TavilySearchClient
from research_swarm.worker import Worker, new_task_result

log = get_logger("research_swarm.coordinator")


def _default_executor(settings: EngineSettings) -> SearchExecutor:
    return SearchExecutor(TavilySearchClient(api_key=settings.tavily_api_key), settings=settings)


def _summary(session: Session) -> SessionSummary:
    return SessionSummary(
        id=session.id,
        query=session.query,
        status=session.status,
        start_time=session.start_time,
        duration_seconds=session.duration_seconds if session.end_time else None,
    )


def briefing(task: Task) -> str:
    """Text handed back to the caller describing what the new worker will do."""
    return (
        f"Delegated research task to {task.role} worker.\n\n"
        "**Worker Briefing:**\n"
        f"- **Task ID:** {task.id}\n"
        f"- **Primary Objective:** {task.objective or 'Not specified'}\n"
        f"- **Do Not Research:** {task.task_boundaries or 'No explicit boundaries'}\n"
        f"- **Preferred Sources:** {task.preferred_sources or 'Authoritative and primary sources'}\n"
        f"- **Output Format:** {task.output_format or 'Key findings with source attribution'}\n"
        f"- **Estimated Searches:** {task.estimated_queries}\n\n"
        "Searches start broad and narrow step by step; authoritative sources are ranked above "
        "SEO-optimised content."
    )


class LeadCoordinator:
    """Owns every session's lifecycle.

    Workers run as background asyncio tasks; callers poll :meth:`progress` or
    :meth:`all_terminal` (or block on :meth:`wait_for_workers`) and decide when to
    call :meth:`synthesize`. Nothing is synthesized automatically.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        executor: SearchExecutor | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store or SessionStore(history_cap=self.settings.completed_history_cap)
        self.executor = executor or _default_executor(self.settings)
        self._workers: dict[str, set[asyncio.Task]] = {}

    # --- Planning ---

    async def create_plan(self, query: str, max_workers: int | None = None) -> PlanResult:
        """Classify ``query`` and open a planning session. No workers are spawned."""
        limit = self.settings.max_workers_default if max_workers is None else max_workers
        tier, budget = classify_with_budget(query, limit)
        strategy = research_strategy(tier)

        session = Session(
            query=query,
            plan=ResearchPlan(complexity=tier, strategy=strategy, target_workers=budget),
        )
        await self.store.add(session)

        with bound_context(session_id=session.id):
            log.info("coordinator.plan.created", complexity=tier.value, worker_budget=budget)

        return PlanResult(
            session_id=session.id,
            complexity=tier,
            worker_budget=budget,
            strategy=strategy,
            description=describe_plan(query, tier, budget),
        )

    # --- Delegation ---

    async def delegate(self, session_id: str, spec: TaskSpec) -> DelegationResult:
        """Register a task on the session and start its worker in the background."""
        task = Task.from_spec(spec)

        def register(session: Session) -> None:
            if session.status not in (SessionStatus.PLANNING, SessionStatus.RESEARCHING):
                raise PlanningError(session_id=session_id, reason=f"cannot delegate to a {session.status.value} session")
            if session.status is SessionStatus.PLANNING:
                session.transition(SessionStatus.RESEARCHING)
            session.task_results.append(new_task_result(task))
            if session.plan is not None:
                session.plan.tasks.append(spec)

        with bound_context(session_id=session_id, task_id=task.id):
            await self.store.mutate(session_id, register)

            worker = Worker(
                task,
                session_id,
                self.store,
                self.executor,
                finding_max_chars=self.settings.finding_max_chars,
            )
            running = asyncio.create_task(self._supervise(worker), name=f"worker:{task.id}")
            tracked = self._workers.setdefault(session_id, set())
            tracked.add(running)
            running.add_done_callback(lambda done: self._forget_worker(session_id, done))

            log.info("coordinator.delegate.completed", role=task.role, estimated_queries=task.estimated_queries)

        return DelegationResult(session_id=session_id, task_id=task.id, role=task.role, briefing=briefing(task))

    async def _supervise(self, worker: Worker) -> None:
        try:
            await worker.run()
        except Exception as e:
            log.exception("coordinator.worker.crashed", task_id=worker.task.id, error=str(e))

            def mark_failed(result: TaskResult) -> None:
                if not result.status.is_terminal:
                    result.fail(f"worker crashed: {e}")

            await self.store.update_task_result(worker.session_id, worker.task.id, mark_failed)

    def _forget_worker(self, session_id: str, done: asyncio.Task) -> None:
        tracked = self._workers.get(session_id)
        if tracked is None:
            return
        tracked.discard(done)
        if not tracked:
            del self._workers[session_id]

    def running_workers(self, session_id: str | None = None) -> int:
        """Worker tasks still running, for one session or across all of them."""
        if session_id is not None:
            return len(self._workers.get(session_id, ()))
        return sum(len(tracked) for tracked in self._workers.values())

    async def wait_for_workers(self, session_id: str, timeout: float | None = None) -> SessionProgress:
        """Block until every worker spawned for the session has finished, or ``timeout`` elapses."""
        pending = list(self._workers.get(session_id, ()))
        if pending:
            await asyncio.wait(pending, timeout=timeout)
        return await self.progress(session_id)

    # --- Completion checks ---

    async def progress(self, session_id: str) -> SessionProgress:
        session = await self.store.get(session_id)
        results = session.task_results
        return SessionProgress(
            session_id=session.id,
            status=session.status,
            total=len(results),
            working=sum(1 for r in results if r.status is TaskStatus.WORKING),
            complete=sum(1 for r in results if r.status is TaskStatus.COMPLETE),
            failed=sum(1 for r in results if r.status is TaskStatus.FAILED),
            findings=sum(len(r.findings) for r in results),
            unique_sources=len(dedupe_sources(s for r in results for s in r.sources)),
        )

    async def all_terminal(self, session_id: str) -> bool:
        """True when every task result is complete or failed."""
        return (await self.progress(session_id)).all_terminal

    async def min_findings(self, session_id: str, threshold: int | None = None) -> bool:
        limit = self.settings.min_findings_threshold if threshold is None else threshold
        return (await self.progress(session_id)).findings >= limit

    # --- Synthesis ---

    async def synthesize(self, session_id: str, style: ReportStyle = "detailed") -> str:
        """Build the final report from whatever the workers have recorded so far.

        Failed tasks contribute nothing but never block synthesis. The session is
        archived afterwards whether synthesis succeeded or not.
        """
        with bound_context(session_id=session_id):
            current = await self.store.get(session_id)
            if current.status.is_terminal:
                raise InvalidTransitionError("session", current.status.value, SessionStatus.SYNTHESIZING.value)
            if not current.task_results:
                raise PlanningError(session_id=session_id, reason="no tasks have been delegated")

            session = await self.store.mutate(session_id, lambda s: s.transition(SessionStatus.SYNTHESIZING))
            log.info("coordinator.synthesis.started", tasks=len(session.task_results))

            try:
                findings, sources = collect(session)
                completed_at = datetime.now(UTC)
                report = build_report(session, findings, sources, style=style, completed_at=completed_at)
            except Exception as e:
                failure = SessionFailure(session_id=session_id, reason=f"synthesis failed: {e}")
                log.error("coordinator.synthesis.failed", error=str(e))
                await self.store.mutate(session_id, lambda s: s.transition(SessionStatus.FAILED))
                await self.store.archive(session_id)
                raise failure from e

            await self.store.mutate(session_id, lambda s: s.complete(report, at=completed_at))
            archived = await self.store.archive(session_id)
            log.info(
                "coordinator.synthesis.completed",
                findings=len(findings),
                sources=len(sources),
                duration_seconds=archived.duration_seconds,
            )
            return report

    async def fail_session(self, session_id: str, reason: str) -> Session:
        """Abort a session without a report and move it into history."""
        with bound_context(session_id=session_id):
            await self.store.mutate(session_id, lambda s: s.transition(SessionStatus.FAILED))
            archived = await self.store.archive(session_id)
            log.warning("coordinator.session.failed", reason=reason)
            return archived

    # --- Registry views ---

    async def list_sessions(self) -> SessionListing:
        active, completed = await self.store.list_sessions()
        recent = completed[-self.settings.recent_completed_limit :] if self.settings.recent_completed_limit else []
        return SessionListing(
            active=[_summary(s) for s in active],
            recent_completed=[_summary(s) for s in reversed(recent)],
        )

    async def get_results(self, session_id: str) -> Session:
        return await self.store.get(session_id)
