"""In-process session registry shared by the coordinator and its workers."""

import asyncio
from collections import deque
from collections.abc import Callable

from research_swarm.exceptions import PlanningError
from research_swarm.logging import get_logger
from research_swarm.models import Session, TaskResult

log = get_logger("research_swarm.store")


class SessionStore:
    """Active sessions keyed by id plus a bounded history of finished ones.

    Every structural change and every task-result write happens under one
    ``asyncio.Lock``. The lock is never held across an await on anything other
    than itself, so workers searching in the background never block callers.
    """

    def __init__(self, history_cap: int = 50) -> None:
        self._active: dict[str, Session] = {}
        self._completed: deque[Session] = deque(maxlen=history_cap)
        self._lock = asyncio.Lock()

    @property
    def history_cap(self) -> int:
        return self._completed.maxlen or 0

    def _require_active(self, session_id: str) -> Session:
        session = self._active.get(session_id)
        if session is None:
            raise PlanningError(session_id=session_id, reason="session not found")
        return session

    def _lookup(self, session_id: str) -> Session | None:
        session = self._active.get(session_id)
        if session is not None:
            return session
        return next((s for s in reversed(self._completed) if s.id == session_id), None)

    async def add(self, session: Session) -> None:
        async with self._lock:
            self._active[session.id] = session

    async def mutate(self, session_id: str, change: Callable[[Session], None]) -> Session:
        """Apply ``change`` to an active session atomically; returns a snapshot."""
        async with self._lock:
            session = self._require_active(session_id)
            change(session)
            return session.model_copy(deep=True)

    async def update_task_result(self, session_id: str, task_id: str, change: Callable[[TaskResult], None]) -> bool:
        """Apply ``change`` to one task's result; False if the session was evicted meanwhile."""
        async with self._lock:
            session = self._lookup(session_id)
            result = session.result_for(task_id) if session else None
            if result is None:
                log.warning("store.task_result.missing", session_id=session_id, task_id=task_id)
                return False
            change(result)
            return True

    async def archive(self, session_id: str) -> Session:
        """Move a terminal session from the active registry into history."""
        async with self._lock:
            session = self._require_active(session_id)
            if not session.status.is_terminal:
                raise PlanningError(session_id=session_id, reason=f"cannot archive a {session.status.value} session")
            del self._active[session_id]
            if len(self._completed) == self._completed.maxlen:
                log.info("store.history.evicted", session_id=self._completed[0].id)
            self._completed.append(session)
            return session.model_copy(deep=True)

    async def get(self, session_id: str) -> Session:
        """Snapshot of an active or archived session."""
        async with self._lock:
            session = self._lookup(session_id)
            if session is None:
                raise PlanningError(session_id=session_id, reason="session not found")
            return session.model_copy(deep=True)

    async def get_active(self, session_id: str) -> Session:
        async with self._lock:
            return self._require_active(session_id).model_copy(deep=True)

    async def list_sessions(self) -> tuple[list[Session], list[Session]]:
        async with self._lock:
            active = [s.model_copy(deep=True) for s in self._active.values()]
            completed = [s.model_copy(deep=True) for s in self._completed]
        return active, completed
