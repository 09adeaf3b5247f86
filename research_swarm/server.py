"""FastAPI application exposing the research session registry."""

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from pydantic_ai import Agent

from research_swarm import __version__
from research_swarm.coordinator import LeadCoordinator
from research_swarm.exceptions import InvalidTransitionError, PlanningError, ResearchEngineError
from research_swarm.logging import configure_structlog, get_logger
from research_swarm.models import (
    DelegationResult,
    PlanResult,
    ReportStyle,
    Session,
    SessionListing,
    SessionProgress,
    TaskSpec,
)
from research_swarm.workflow import run_research_workflow

log = get_logger("research_swarm.server")


# --- Request/Response schemas ---


class PlanRequest(BaseModel):
    """Incoming request to open a research session."""

    query: str = Field(
        min_length=1,
        max_length=1000,
        description="Research question to investigate (1-1000 characters)",
        examples=["Compare the economic impact of solar and wind energy across Europe"],
    )
    max_workers: int | None = Field(
        default=None,
        ge=1,
        le=10,
        description="Upper bound on workers for this session (1-10)",
        examples=[5],
    )


class ResearchRequest(PlanRequest):
    """Incoming request for a complete research run."""

    style: ReportStyle = Field(default="detailed", description="Final report style", examples=["executive"])


class SynthesizeRequest(BaseModel):
    style: ReportStyle = Field(default="detailed", description="Final report style", examples=["academic"])


class ReportResponse(BaseModel):
    session_id: str = Field(description="Session the report belongs to")
    report: str = Field(description="Final markdown report")


class ErrorResponse(BaseModel):
    """Structured error response."""

    error: str = Field(
        description="Error type (PlanningError, InvalidTransitionError, SessionFailure, ValidationError, InternalServerError)",
        examples=["PlanningError"],
    )
    detail: str = Field(
        description="User-friendly error message explaining what went wrong",
        examples=["Research session 'research-1234' cannot be used: session not found"],
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status", examples=["ok"])
    version: str = Field(default="", description="Service version (only included in /health endpoint)")


# --- Exception handlers ---

# Errors whose raw message may leak internals are replaced with a fixed message
_SAFE_ERROR_MESSAGES: dict[str, str] = {
    "SessionFailure": "Unable to generate research report. Please try again.",
}

_ERROR_STATUS_CODES: dict[type[ResearchEngineError], int] = {
    PlanningError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
}


async def _handle_engine_error(request: Request, exc: ResearchEngineError) -> JSONResponse:
    error_type = type(exc).__name__
    log.warning("request.engine_error", error_type=error_type, detail=str(exc))
    status_code = next(
        (code for exc_type, code in _ERROR_STATUS_CODES.items() if isinstance(exc, exc_type)),
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    detail = _SAFE_ERROR_MESSAGES.get(error_type, str(exc))
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=error_type, detail=detail).model_dump())


async def _handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    log.warning("request.validation_error", detail=str(exc))
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(error="ValidationError", detail=str(exc)).model_dump(),
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log.exception("request.unexpected_error", error=str(exc))
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="InternalServerError", detail="An unexpected error occurred.").model_dump(),
    )


# --- Dependencies ---


def get_coordinator(request: Request) -> LeadCoordinator:
    """The app-wide coordinator, created on first use so the app imports without credentials."""
    if request.app.state.coordinator is None:
        request.app.state.coordinator = LeadCoordinator()
    return request.app.state.coordinator


_ERROR_RESPONSES = {
    404: {"description": "Unknown or unusable session", "model": ErrorResponse},
    409: {"description": "Session is in the wrong state for this operation", "model": ErrorResponse},
    500: {"description": "Internal server error", "model": ErrorResponse},
}


# --- App factory ---


def get_app(coordinator: LeadCoordinator | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_structlog()
    Agent.instrument_all()

    application = FastAPI(
        title="Research Swarm",
        description="""
Multi-worker research orchestration engine.

## Overview

A query is classified by complexity, split into bounded worker tasks, and each worker
runs several web searches concurrently. Results are quality-scored, merged while
tolerating partial failure, and synthesized into one markdown report.

## Session lifecycle

1. `POST /sessions` - classify the query and open a planning session
2. `POST /sessions/{id}/tasks` - delegate one task; its worker starts immediately
3. `GET /sessions/{id}/progress` - poll until every task is complete or failed
4. `POST /sessions/{id}/synthesize` - build the report and archive the session

`POST /research` runs all four steps with an LLM choosing the delegations.
        """,
        version=__version__,
    )
    application.state.coordinator = coordinator

    application.add_exception_handler(ResearchEngineError, _handle_engine_error)  # type: ignore[arg-type]
    application.add_exception_handler(ValidationError, _handle_validation_error)  # type: ignore[arg-type]
    application.add_exception_handler(Exception, _handle_unexpected_error)

    @application.post(
        "/sessions",
        response_model=PlanResult,
        status_code=status.HTTP_201_CREATED,
        summary="Create Research Plan",
        description="Classify the query, pick a worker budget, and open a planning session. Spawns nothing.",
        tags=["Sessions"],
        responses=_ERROR_RESPONSES,
    )
    async def create_plan(
        body: PlanRequest, coordinator: LeadCoordinator = Depends(get_coordinator)
    ) -> PlanResult:
        return await coordinator.create_plan(body.query, body.max_workers)

    @application.post(
        "/sessions/{session_id}/tasks",
        response_model=DelegationResult,
        status_code=status.HTTP_202_ACCEPTED,
        summary="Delegate Research Task",
        description="Register a task on the session and start its worker in the background.",
        tags=["Sessions"],
        responses=_ERROR_RESPONSES,
    )
    async def delegate(
        session_id: str, spec: TaskSpec, coordinator: LeadCoordinator = Depends(get_coordinator)
    ) -> DelegationResult:
        return await coordinator.delegate(session_id, spec)

    @application.get(
        "/sessions/{session_id}/progress",
        response_model=SessionProgress,
        summary="Session Progress",
        description="Task counts by status plus findings and unique sources gathered so far.",
        tags=["Sessions"],
        responses=_ERROR_RESPONSES,
    )
    async def progress(session_id: str, coordinator: LeadCoordinator = Depends(get_coordinator)) -> SessionProgress:
        return await coordinator.progress(session_id)

    @application.post(
        "/sessions/{session_id}/synthesize",
        response_model=ReportResponse,
        summary="Synthesize Report",
        description="Build the final report from the findings recorded so far and archive the session.",
        tags=["Sessions"],
        responses=_ERROR_RESPONSES,
    )
    async def synthesize(
        session_id: str,
        body: SynthesizeRequest | None = None,
        coordinator: LeadCoordinator = Depends(get_coordinator),
    ) -> ReportResponse:
        style = body.style if body else "detailed"
        report = await coordinator.synthesize(session_id, style=style)
        return ReportResponse(session_id=session_id, report=report)

    @application.get(
        "/sessions",
        response_model=SessionListing,
        summary="List Sessions",
        description="Active sessions and the most recently completed ones.",
        tags=["Sessions"],
    )
    async def list_sessions(coordinator: LeadCoordinator = Depends(get_coordinator)) -> SessionListing:
        return await coordinator.list_sessions()

    @application.get(
        "/sessions/{session_id}",
        response_model=Session,
        summary="Get Session Results",
        description="Full session state, from the active registry or the completed history.",
        tags=["Sessions"],
        responses=_ERROR_RESPONSES,
    )
    async def get_results(session_id: str, coordinator: LeadCoordinator = Depends(get_coordinator)) -> Session:
        return await coordinator.get_results(session_id)

    @application.post(
        "/research",
        response_model=Session,
        summary="Execute Research Workflow",
        description="Plan, delegate with the LLM delegation agent, wait for every worker, and synthesize.",
        tags=["Research"],
        responses={422: {"description": "Research engine error", "model": ErrorResponse}, **_ERROR_RESPONSES},
    )
    async def research(body: ResearchRequest, coordinator: LeadCoordinator = Depends(get_coordinator)) -> Session:
        return await run_research_workflow(
            body.query,
            coordinator=coordinator,
            max_workers=body.max_workers,
            style=body.style,
        )

    @application.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="General health check endpoint that returns service status and version.",
        tags=["Health"],
    )
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @application.get("/health/liveness", response_model=HealthResponse, summary="Liveness Probe", tags=["Health"])
    async def liveness() -> HealthResponse:
        return HealthResponse(status="alive")

    @application.get("/health/readiness", response_model=HealthResponse, summary="Readiness Probe", tags=["Health"])
    async def readiness() -> HealthResponse:
        return HealthResponse(status="ready")

    return application


app = get_app()
