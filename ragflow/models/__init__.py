"""Pydantic models for ragflow documents, plans, results and workflow instances."""

from ragflow.models.pipeline import IngestionPhase, ResearchPhase
from ragflow.models.rag import (
    AgentPlan,
    Chunk,
    Document,
    EmbeddingVector,
    SearchResult,
    VectorMatch,
)
from ragflow.models.workflow import (
    EMPTY_DOCUMENT_MESSAGE,
    NO_INFORMATION_ANSWER,
    IngestionResult,
    IngestRequest,
    InstanceRecord,
    InstanceStatus,
    ResearchRequest,
    ResearchResult,
    WorkflowRequest,
    parse_workflow_payload,
)

__all__ = [
    "EMPTY_DOCUMENT_MESSAGE",
    "NO_INFORMATION_ANSWER",
    "AgentPlan",
    "Chunk",
    "Document",
    "EmbeddingVector",
    "IngestRequest",
    "IngestionPhase",
    "IngestionResult",
    "InstanceRecord",
    "InstanceStatus",
    "ResearchPhase",
    "ResearchRequest",
    "ResearchResult",
    "SearchResult",
    "VectorMatch",
    "WorkflowRequest",
    "parse_workflow_payload",
]
