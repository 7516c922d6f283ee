"""Pydantic request/response schemas for the ragflow HTTP API.

Request and response bodies use camelCase on the wire (``sourceUrl``,
``statusUrl``, ``topK``) and snake_case in Python, via an alias generator.
Convention: request schemas end with "Request", response schemas end with
"Response".
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IngestDocumentRequest(BaseModel):
    """Body of ``POST /api/ingest``."""

    model_config = _CAMEL_CONFIG

    content: str = Field(description="Raw document text; empty text yields an 'empty' result.")
    source_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ResearchQueryRequest(BaseModel):
    """Body of ``POST /api/research``."""

    model_config = _CAMEL_CONFIG

    query: str = Field(min_length=1)
    top_k: int | None = Field(default=None, ge=1, le=50, description="Matches per sub-query.")


class WorkflowAcceptedResponse(BaseModel):
    """Returned when a workflow instance has been queued."""

    model_config = _CAMEL_CONFIG

    id: str
    status: Literal["queued", "thinking"]
    status_url: str


class StatusResponse(BaseModel):
    """Current state of a workflow instance.

    ``output`` is present once the instance is ``complete``; ``error`` once
    it is ``errored``.  ``phase`` is the last pipeline phase this process
    saw, when known.
    """

    model_config = _CAMEL_CONFIG

    id: str
    status: str
    phase: str | None = None
    output: dict[str, Any] | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
