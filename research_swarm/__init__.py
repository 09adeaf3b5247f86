"""Research Swarm - multi-worker research orchestration engine"""

__version__ = "0.1.0"

from research_swarm.agents import clear_agent_cache, create_delegation_agent, get_delegation_agent
from research_swarm.config import EngineSettings, get_settings
from research_swarm.coordinator import LeadCoordinator
from research_swarm.exceptions import (
    InvalidTransitionError,
    PlanningError,
    QueryFailure,
    ResearchEngineError,
    SessionFailure,
    TaskFailure,
)
from research_swarm.models import (
    Complexity,
    DelegationPlan,
    DelegationResult,
    PlanResult,
    ResearchPlan,
    ScoredResult,
    SearchConfig,
    SearchHit,
    SearchOutcome,
    Session,
    SessionListing,
    SessionProgress,
    SessionStatus,
    Task,
    TaskResult,
    TaskSpec,
    TaskStatus,
)
from research_swarm.scoring import QualityScorer, ScoringTables
from research_swarm.search import SearchClient, SearchExecutor
from research_swarm.server import get_app
from research_swarm.store import SessionStore
from research_swarm.synthesis import build_report
from research_swarm.workflow import run_research_workflow

__all__ = [
    # Models
    "Complexity",
    "SessionStatus",
    "TaskStatus",
    "TaskSpec",
    "Task",
    "TaskResult",
    "ResearchPlan",
    "Session",
    "SearchConfig",
    "SearchHit",
    "ScoredResult",
    "SearchOutcome",
    "PlanResult",
    "DelegationResult",
    "SessionProgress",
    "SessionListing",
    "DelegationPlan",
    # Engine
    "LeadCoordinator",
    "SessionStore",
    "SearchClient",
    "SearchExecutor",
    "QualityScorer",
    "ScoringTables",
    "build_report",
    # Configuration
    "EngineSettings",
    "get_settings",
    # Agents
    "create_delegation_agent",
    "get_delegation_agent",
    "clear_agent_cache",
    # Exceptions
    "ResearchEngineError",
    "PlanningError",
    "QueryFailure",
    "TaskFailure",
    "SessionFailure",
    "InvalidTransitionError",
    # Workflow
    "run_research_workflow",
    # Server
    "get_app",
]
