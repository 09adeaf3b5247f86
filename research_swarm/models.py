"""Pydantic models for research sessions, tasks, and search results."""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from research_swarm.exceptions import InvalidTransitionError

SearchDepth = Literal["basic", "advanced"]
ReportStyle = Literal["executive", "detailed", "academic"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


# --- Enums ---


class Complexity(str, Enum):
    """Effort tier assigned to a query by the complexity classifier."""

    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class SessionStatus(str, Enum):
    """Lifecycle of a research session."""

    PLANNING = "planning"
    RESEARCHING = "researching"
    SYNTHESIZING = "synthesizing"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETE, SessionStatus.FAILED)


_SESSION_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.PLANNING: frozenset({SessionStatus.RESEARCHING, SessionStatus.FAILED}),
    SessionStatus.RESEARCHING: frozenset({SessionStatus.SYNTHESIZING, SessionStatus.FAILED}),
    SessionStatus.SYNTHESIZING: frozenset({SessionStatus.COMPLETE, SessionStatus.FAILED}),
    SessionStatus.COMPLETE: frozenset(),
    SessionStatus.FAILED: frozenset(),
}


class TaskStatus(str, Enum):
    """Session-side view of a delegated task."""

    WORKING = "working"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TaskStatus.WORKING


# --- Tasks ---


class TaskSpec(BaseModel):
    """A delegation request: what one worker should research."""

    role: str = Field(
        min_length=1,
        description="Category tag selecting the worker's query templates",
        examples=["market_researcher"],
    )
    objective: str = Field(
        default="",
        description="Free-text research objective for the worker",
        examples=["Electric vehicle battery supply chain in Europe"],
    )
    output_format: str = Field(
        default="",
        description="Requested structure of the worker's findings",
        examples=["Bullet list of facts with source URLs"],
    )
    task_boundaries: str = Field(
        default="",
        description="What the worker should NOT cover (reported, not enforced)",
        examples=["Do not cover charging infrastructure"],
    )
    preferred_sources: str | None = Field(
        default=None,
        description="Preferred kinds of sources",
        examples=["industry reports, government statistics"],
    )
    estimated_queries: int = Field(
        default=4,
        ge=2,
        le=8,
        description="Query budget; the worker generates at most estimated_queries + 1 searches",
        examples=[4],
    )


class Task(TaskSpec):
    """A delegated TaskSpec with its generated identifier."""

    id: str = Field(description="Unique task identifier", examples=["market_researcher-1a2b3c4d"])

    @classmethod
    def from_spec(cls, spec: TaskSpec) -> "Task":
        return cls(id=f"{spec.role}-{uuid4().hex[:8]}", **spec.model_dump())


class TaskResult(BaseModel):
    """Progress and outcome of one task as seen by its session."""

    task_id: str
    role: str
    findings: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list, description="Deduplicated source URLs, first-seen order")
    status: TaskStatus = TaskStatus.WORKING
    error: str | None = None

    @model_validator(mode="after")
    def _failed_requires_error(self) -> "TaskResult":
        if self.status is TaskStatus.FAILED and not self.error:
            raise ValueError("a failed task result must carry an error")
        return self

    def _ensure_working(self, target: TaskStatus) -> None:
        if self.status.is_terminal:
            raise InvalidTransitionError("task", self.status.value, target.value)

    def complete(self, findings: list[str], sources: list[str]) -> None:
        self._ensure_working(TaskStatus.COMPLETE)
        self.findings = list(findings)
        self.sources = list(dict.fromkeys(sources))
        self.status = TaskStatus.COMPLETE

    def fail(self, error: str) -> None:
        self._ensure_working(TaskStatus.FAILED)
        self.error = error or "unknown error"
        self.status = TaskStatus.FAILED


# --- Sessions ---


class ResearchPlan(BaseModel):
    """Complexity assessment and the tasks delegated under it."""

    complexity: Complexity
    strategy: str
    target_workers: int = Field(ge=1, le=10)
    tasks: list[TaskSpec] = Field(default_factory=list)


class Session(BaseModel):
    """One end-to-end research request and its accumulated state."""

    id: str = Field(default_factory=lambda: f"research-{uuid4().hex}")
    query: str
    status: SessionStatus = SessionStatus.PLANNING
    start_time: datetime = Field(default_factory=_utcnow)
    end_time: datetime | None = None
    plan: ResearchPlan | None = None
    task_results: list[TaskResult] = Field(default_factory=list)
    final_report: str | None = None

    @model_validator(mode="after")
    def _report_iff_complete(self) -> "Session":
        if (self.final_report is not None) != (self.status is SessionStatus.COMPLETE):
            raise ValueError("final_report must be set exactly when the session is complete")
        return self

    def transition(self, target: SessionStatus) -> None:
        """Move forward through the lifecycle; anything else raises."""
        if target is SessionStatus.COMPLETE:
            raise InvalidTransitionError("session", self.status.value, target.value)
        self._check(target)
        self.status = target
        if target is SessionStatus.FAILED:
            self.end_time = _utcnow()

    def complete(self, report: str, at: datetime | None = None) -> None:
        self._check(SessionStatus.COMPLETE)
        self.final_report = report
        self.end_time = at or _utcnow()
        self.status = SessionStatus.COMPLETE

    def _check(self, target: SessionStatus) -> None:
        if target not in _SESSION_TRANSITIONS[self.status]:
            raise InvalidTransitionError("session", self.status.value, target.value)

    def result_for(self, task_id: str) -> TaskResult | None:
        return next((r for r in self.task_results if r.task_id == task_id), None)

    @property
    def duration_seconds(self) -> int:
        if self.end_time is None:
            return 0
        return round((self.end_time - self.start_time).total_seconds())


# --- Search ---


class SearchConfig(BaseModel):
    """Per-query settings passed to the search collaborator."""

    max_results: int = Field(ge=1)
    search_depth: SearchDepth
    timeout_ms: int = Field(gt=0)
    published_after: date | None = Field(default=None, description="Only return results published on or after this date")


class SearchHit(BaseModel):
    """A raw result from the search collaborator."""

    title: str = ""
    url: str = ""
    content: str = ""
    published_date: str | None = None


class ScoredResult(SearchHit):
    """A search hit that passed the quality filter."""

    quality_score: float = Field(ge=0.0, le=1.0)


class SearchMetadata(BaseModel):
    attempts: int = Field(ge=0)
    original_count: int = Field(default=0, ge=0)
    filtered_count: int = Field(default=0, ge=0)
    search_depth: SearchDepth
    query_index: int = Field(ge=0)


class SearchOutcome(BaseModel):
    """Result of running one query, successful or not."""

    query: str
    results: list[ScoredResult] = Field(default_factory=list)
    error: str | None = None
    metadata: SearchMetadata

    @property
    def failed(self) -> bool:
        return self.error is not None


# --- Registry views ---


class PlanResult(BaseModel):
    """Returned by ``create_plan``."""

    session_id: str
    complexity: Complexity
    worker_budget: int
    strategy: str
    description: str


class DelegationResult(BaseModel):
    """Returned by ``delegate``."""

    session_id: str
    task_id: str
    role: str
    briefing: str


class SessionProgress(BaseModel):
    """Snapshot used by callers deciding when to synthesize."""

    session_id: str
    status: SessionStatus
    total: int
    working: int
    complete: int
    failed: int
    findings: int
    unique_sources: int

    @property
    def all_terminal(self) -> bool:
        return self.working == 0


class SessionSummary(BaseModel):
    id: str
    query: str
    status: SessionStatus
    start_time: datetime
    duration_seconds: int | None = None


class SessionListing(BaseModel):
    active: list[SessionSummary] = Field(default_factory=list)
    recent_completed: list[SessionSummary] = Field(default_factory=list)


class DelegationPlan(BaseModel):
    """Structured output of the delegation agent."""

    tasks: list[TaskSpec] = Field(
        min_length=1,
        max_length=10,
        description="1-10 worker tasks with distinct roles and non-overlapping boundaries",
    )
