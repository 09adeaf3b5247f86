"""Domain-specific exceptions for the research orchestration engine."""

from collections.abc import Sequence


class ResearchEngineError(Exception):
    """Base exception for research engine errors."""


class PlanningError(ResearchEngineError):
    """Raised when a session id is unknown or the session cannot accept the request."""

    def __init__(self, session_id: str, reason: str) -> None:
        self.session_id = session_id
        self.reason = reason
        super().__init__(f"Research session '{session_id}' cannot be used: {reason}")


class QueryFailure(ResearchEngineError):
    """A single search query exhausted its retries.

    Contained by the worker: it becomes an annotated finding, never a task failure.
    """

    def __init__(self, query: str, attempts: int, reason: str) -> None:
        self.query = query
        self.attempts = attempts
        self.reason = reason
        super().__init__(f"Failed after {attempts} attempts: {reason}")


class TaskFailure(ResearchEngineError):
    """Raised inside a worker when aggregating its queries fails."""

    def __init__(self, task_id: str, queries: Sequence[str], reason: str) -> None:
        self.task_id = task_id
        self.queries = list(queries)
        self.reason = reason
        attempted = ", ".join(self.queries) if self.queries else "none"
        super().__init__(f"Search failure: {reason}. Queries attempted: {attempted}")


class SessionFailure(ResearchEngineError):
    """Catastrophic coordinator-level error; the session ends Failed with no report."""

    def __init__(self, session_id: str, reason: str) -> None:
        self.session_id = session_id
        self.reason = reason
        super().__init__(f"Research session '{session_id}' failed: {reason}")


class InvalidTransitionError(ResearchEngineError):
    """Raised when a session or task status would move backwards or out of a terminal state."""

    def __init__(self, entity: str, current: str, target: str) -> None:
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Invalid {entity} transition: {current} -> {target}")
