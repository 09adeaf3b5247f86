"""Worker: executes one task's queries concurrently and reports into its session."""

import asyncio
from collections.abc import Callable
from enum import Enum

from research_swarm.exceptions import InvalidTransitionError, TaskFailure
from research_swarm.logging import bound_context, get_logger
from research_swarm.models import ScoredResult, SearchOutcome, Task, TaskResult
from research_swarm.planner import generate_queries
from research_swarm.search import SearchExecutor
from research_swarm.store import SessionStore

log = get_logger("research_swarm.worker")

HIGH_AUTHORITY_SCORE = 0.7


class WorkerState(str, Enum):
    READY = "ready"
    WORKING = "working"
    COMPLETE = "complete"
    FAILED = "failed"


_WORKER_TRANSITIONS = {
    WorkerState.READY: {WorkerState.WORKING},
    WorkerState.WORKING: {WorkerState.COMPLETE, WorkerState.FAILED},
    WorkerState.COMPLETE: set(),
    WorkerState.FAILED: set(),
}


class Worker:
    """Owns one :class:`Task` for its lifetime and writes only that task's result."""

    def __init__(
        self,
        task: Task,
        session_id: str,
        store: SessionStore,
        executor: SearchExecutor,
        finding_max_chars: int = 350,
    ) -> None:
        self.task = task
        self.session_id = session_id
        self.store = store
        self.executor = executor
        self.finding_max_chars = finding_max_chars
        self.state = WorkerState.READY
        self.queries: list[str] = []

    def _enter(self, target: WorkerState) -> None:
        if target not in _WORKER_TRANSITIONS[self.state]:
            raise InvalidTransitionError("worker", self.state.value, target.value)
        self.state = target

    async def run(self) -> WorkerState:
        """Plan queries, fan them out, wait for all of them, then record the outcome."""
        with bound_context(session_id=self.session_id, task_id=self.task.id):
            self.queries = generate_queries(self.task)
            self._enter(WorkerState.WORKING)
            log.info("worker.started", role=self.task.role, query_count=len(self.queries))

            try:
                outcomes = await self._search_all()
                findings, sources = self.aggregate(outcomes)
            except Exception as e:
                failure = e if isinstance(e, TaskFailure) else TaskFailure(self.task.id, self.queries, str(e))
                await self._record(lambda r: r.fail(str(failure)))
                self._enter(WorkerState.FAILED)
                log.warning("worker.failed", error=str(failure))
                return self.state

            await self._record(lambda r: r.complete(findings, sources))
            self._enter(WorkerState.COMPLETE)
            log.info("worker.completed", findings=len(findings), sources=len(sources))
            return self.state

    async def _search_all(self) -> list[SearchOutcome]:
        batch_size = len(self.queries)
        settled = await asyncio.gather(
            *(self.executor.execute(query, index, batch_size) for index, query in enumerate(self.queries)),
            return_exceptions=True,
        )
        crashed = [r for r in settled if isinstance(r, BaseException)]
        if crashed:
            raise TaskFailure(self.task.id, self.queries, f"search executor crashed: {crashed[0]}")
        return [r for r in settled if isinstance(r, SearchOutcome)]

    async def _record(self, change: Callable[[TaskResult], None]) -> None:
        await self.store.update_task_result(self.session_id, self.task.id, change)

    def aggregate(self, outcomes: list[SearchOutcome]) -> tuple[list[str], list[str]]:
        """Turn settled search outcomes into findings and first-seen-ordered source URLs."""
        if outcomes and all(o.failed for o in outcomes):
            errors = "; ".join(o.error or "" for o in outcomes)
            raise TaskFailure(self.task.id, self.queries, f"every query failed ({errors})")

        findings: list[str] = []
        sources: list[str] = []
        for outcome in outcomes:
            if outcome.failed:
                findings.append(f'Search failed for "{outcome.query}": {outcome.error}')
                continue
            for result in outcome.results:
                findings.append(self.format_finding(outcome.query, result))
                if result.url not in sources:
                    sources.append(result.url)
        return findings, sources

    def format_finding(self, query: str, result: ScoredResult) -> str:
        tags = []
        if result.quality_score > HIGH_AUTHORITY_SCORE:
            tags.append("High Authority")
        if self.executor.scorer.is_very_recent(result.published_date):
            tags.append("Recent")
        prefix = f"[{', '.join(tags)}] " if tags else ""

        content = result.content
        if len(content) > self.finding_max_chars:
            content = f"{content[: self.finding_max_chars]}..."
        return f"[{query}] {prefix}{result.title}: {content}"


def new_task_result(task: Task) -> TaskResult:
    return TaskResult(task_id=task.id, role=task.role)
