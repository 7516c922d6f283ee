"""Knowledge-base data models for ragflow.

Defines Pydantic v2 models for documents, chunks, embedding vectors, vector
matches, agent plans and hydrated search results.  All models use frozen
config to enforce immutability.

How the models flow through the two pipelines:

    1. INGESTION: a :class:`Document` is created once per request, split
       into :class:`Chunk` records, and each chunk gets one
       :class:`EmbeddingVector` in the vector index.
    2. RESEARCH: an :class:`AgentPlan` yields sub-queries, each sub-query
       returns :class:`VectorMatch` ids, and surviving ids are hydrated
       into :class:`SearchResult` rows from the relational store.

Models that cross the HTTP boundary serialize with camelCase aliases
(``sourceUrl``, ``subQueries``) while Python code uses snake_case names.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Shared config for models that appear in API payloads or workflow output.
_API_MODEL_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Document — one ingestion request's unit of content.
# ---------------------------------------------------------------------------
class Document(BaseModel):
    """A unit of ingested content.

    ``id`` and ``created_at`` are generated exactly once inside the
    ``create-document`` step; a replayed ingestion reads them back from the
    step store instead of generating new ones.
    """

    model_config = _API_MODEL_CONFIG

    id: str = Field(description="Opaque stable identifier (uuid4 hex).")
    source_url: str | None = Field(default=None, description="Optional origin reference.")
    created_at: int = Field(description="Creation time in epoch milliseconds.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="String-keyed, JSON-serializable caller metadata.",
    )


# ---------------------------------------------------------------------------
# Chunk — the unit of embedding and retrieval.
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """A contiguous slice of a document's text.

    Chunk ids are derived from the owning document id and the zero-based
    index (``"{document_id}_{index}"``) so re-chunking the same document
    always produces the same ids.
    """

    model_config = _API_MODEL_CONFIG

    id: str = Field(description='Deterministic id, "{document_id}_{index}".')
    document_id: str = Field(description="Owning document id.")
    index: int = Field(ge=0, description="Zero-based position within the document.")
    content: str = Field(description="The chunk's text slice.")


class EmbeddingVector(BaseModel):
    """A vector stored in the index, 1:1 with a chunk id."""

    model_config = ConfigDict(frozen=True)

    id: str
    values: list[float]
    # Scalar values only: vector indexes reject nested metadata.
    metadata: dict[str, str | int | float] = Field(default_factory=dict)


class VectorMatch(BaseModel):
    """A nearest-neighbour hit returned by the vector index (higher score is better)."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float


# ---------------------------------------------------------------------------
# Research-side models
# ---------------------------------------------------------------------------
class AgentPlan(BaseModel):
    """Sub-queries produced by the planner for one research request."""

    model_config = _API_MODEL_CONFIG

    sub_queries: list[str] = Field(min_length=1, max_length=3)
    thought_process: str = ""


class SearchResult(BaseModel):
    """A hydrated, scored chunk ready for answer synthesis."""

    model_config = _API_MODEL_CONFIG

    id: str = Field(description="Chunk id; unique within one research result.")
    document_id: str
    content: str
    score: float = Field(description="Similarity score, higher is better.")
    source_url: str | None = Field(default=None, description="Inherited from the owning document.")
