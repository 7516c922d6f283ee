"""Workflow payload, result and instance models.

The orchestrator has exactly one entry point, so the two request shapes
form a closed tagged union keyed on ``operation``.  Payloads are parsed
once at that boundary via :func:`parse_workflow_payload`; each pipeline
then receives its own narrow, fully-typed request.

Results are what an instance reports as its ``output`` once it completes.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from ragflow.models.rag import AgentPlan, SearchResult
from ragflow.utils.errors import ConfigurationError

_API_MODEL_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

NO_INFORMATION_ANSWER = "I couldn't find any relevant information in the knowledge base."
EMPTY_DOCUMENT_MESSAGE = "empty document"


# ---------------------------------------------------------------------------
# Requests (the tagged union)
# ---------------------------------------------------------------------------
class IngestRequest(BaseModel):
    """Parameters of an ingestion run."""

    model_config = _API_MODEL_CONFIG

    operation: Literal["ingest"] = "ingest"
    content: str
    source_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ResearchRequest(BaseModel):
    """Parameters of a research run.  ``top_k`` overrides the per-sub-query default."""

    model_config = _API_MODEL_CONFIG

    operation: Literal["research"] = "research"
    query: str = Field(min_length=1)
    top_k: int | None = Field(default=None, ge=1, le=50)


WorkflowRequest = Annotated[
    Union[IngestRequest, ResearchRequest],
    Field(discriminator="operation"),
]

_REQUEST_ADAPTER: TypeAdapter[IngestRequest | ResearchRequest] = TypeAdapter(WorkflowRequest)


def parse_workflow_payload(payload: dict[str, Any]) -> IngestRequest | ResearchRequest:
    """Validate a raw instance payload into one of the request variants.

    Raises
    ------
    ConfigurationError
        If ``operation`` is missing or unknown, or the variant's fields do
        not validate.  Bad payloads are never retried.
    """
    try:
        return _REQUEST_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise ConfigurationError(
            message=f"Invalid workflow payload: {exc.errors(include_url=False)}"
        ) from exc


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Outcome of an ingestion run.

    ``status`` is ``"ingested"`` on success or ``"empty"`` when the document
    produced no chunks; neither is an error.
    """

    model_config = _API_MODEL_CONFIG

    status: Literal["ingested", "empty"]
    document_id: str
    chunk_count: int = Field(ge=0)
    chunks_processed: int = Field(ge=0)
    message: str | None = None


class ResearchResult(BaseModel):
    """Outcome of a research run."""

    model_config = _API_MODEL_CONFIG

    plan: AgentPlan
    answer: str
    sources: list[str] = Field(
        default_factory=list,
        description="Deduplicated, order-preserving non-null source URLs.",
    )
    results: list[SearchResult] = Field(
        default_factory=list,
        description="Ranked passages the answer was grounded on.",
    )


# ---------------------------------------------------------------------------
# Workflow instances
# ---------------------------------------------------------------------------
class InstanceStatus(str, Enum):  # noqa: UP042
    """Lifecycle of a workflow instance."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETE = "complete"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (InstanceStatus.COMPLETE, InstanceStatus.ERRORED)


class InstanceRecord(BaseModel):
    """Persisted state of one workflow instance."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    payload: dict[str, Any]
    status: InstanceStatus = InstanceStatus.QUEUED
    output: Any | None = None
    error: str | None = None
    created_at: datetime
    updated_at: datetime
