"""FastAPI routes for the ragflow workflow API.

Endpoint                Method  Description
─────────────────────────────────────────────────────────────────────
/api/ingest             POST    Queue an ingestion instance
/api/research           POST    Queue a research instance
/api/status?id=         GET     Poll an instance (status, phase, output)
/api/health             GET     Health check + provider status

Work never runs inside the request: the POST endpoints only create a
durable instance and return its id.  Dependencies are resolved from
``app.state`` (populated by the lifespan in ``ragflow.main``) through
``Annotated[..., Depends(...)]`` aliases.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ragflow import __version__
from ragflow.api.schemas import (
    ErrorResponse,
    HealthResponse,
    IngestDocumentRequest,
    ResearchQueryRequest,
    StatusResponse,
    WorkflowAcceptedResponse,
)
from ragflow.models.workflow import InstanceStatus
from ragflow.pipeline.durable import DurableWorkflowEngine
from ragflow.pipeline.progress_tracker import ProgressTracker
from ragflow.utils.errors import InstanceNotFoundError
from ragflow.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api")


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_engine(request: Request) -> DurableWorkflowEngine:
    """Return the workflow engine from application state."""
    return request.app.state.engine


def _get_progress_tracker(request: Request) -> ProgressTracker:
    """Return the progress tracker from application state."""
    return request.app.state.progress_tracker


EngineDep = Annotated[DurableWorkflowEngine, Depends(_get_engine)]
TrackerDep = Annotated[ProgressTracker, Depends(_get_progress_tracker)]


def _status_url(instance_id: str) -> str:
    return f"/api/status?id={instance_id}"


# ---------------------------------------------------------------------------
# Workflow endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/ingest",
    response_model=WorkflowAcceptedResponse,
    status_code=202,
    summary="Queue a document for ingestion",
)
async def ingest_document(
    body: IngestDocumentRequest,
    engine: EngineDep,
) -> WorkflowAcceptedResponse:
    """Create an ingestion instance; poll ``statusUrl`` for the result."""
    payload = {
        "operation": "ingest",
        "content": body.content,
        "source_url": body.source_url,
        "metadata": body.metadata,
    }
    instance_id = await engine.create_instance(payload)
    _logger.info("ingest_queued", instance_id=instance_id, content_length=len(body.content))
    return WorkflowAcceptedResponse(
        id=instance_id,
        status="queued",
        status_url=_status_url(instance_id),
    )


@router.post(
    "/research",
    response_model=WorkflowAcceptedResponse,
    status_code=202,
    summary="Queue a research question",
)
async def research_query(
    body: ResearchQueryRequest,
    engine: EngineDep,
) -> WorkflowAcceptedResponse:
    """Create a research instance; poll ``statusUrl`` for the answer."""
    payload: dict[str, Any] = {"operation": "research", "query": body.query}
    if body.top_k is not None:
        payload["top_k"] = body.top_k
    instance_id = await engine.create_instance(payload)
    _logger.info("research_queued", instance_id=instance_id)
    return WorkflowAcceptedResponse(
        id=instance_id,
        status="thinking",
        status_url=_status_url(instance_id),
    )


@router.get(
    "/status",
    response_model=StatusResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Poll a workflow instance",
)
async def get_status(
    engine: EngineDep,
    tracker: TrackerDep,
    instance_id: Annotated[str | None, Query(alias="id")] = None,
) -> StatusResponse:
    """Return the instance status plus its output or error once terminal."""
    if not instance_id:
        raise HTTPException(status_code=400, detail="Missing ID")

    try:
        record = await engine.get_instance_status(instance_id)
    except InstanceNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc

    progress = tracker.get_status(instance_id)
    return StatusResponse(
        id=record.instance_id,
        status=record.status.value,
        phase=progress["phase"] if progress else None,
        output=record.output if record.status == InstanceStatus.COMPLETE else None,
        error=record.error if record.status == InstanceStatus.ERRORED else None,
    )


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    vector_store = getattr(request.app.state, "vector_store", None)
    if vector_store is not None:
        try:
            providers["vector_count"] = await vector_store.count()
            providers["vector_store"] = True
        except Exception as exc:
            _logger.warning("health_vector_store_unavailable", error=str(exc))
            providers["vector_store"] = False

    critical = ("llm", "embedding", "vector_store")
    status = "healthy" if all(providers.get(name, False) for name in critical) else "degraded"

    return HealthResponse(
        status=status,
        version=__version__,
        providers=providers,
    )
