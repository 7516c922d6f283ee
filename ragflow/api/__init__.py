"""ragflow API layer: routes, schemas and middleware."""

from ragflow.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from ragflow.api.routes import router
from ragflow.api.schemas import (
    ErrorResponse,
    HealthResponse,
    IngestDocumentRequest,
    ResearchQueryRequest,
    StatusResponse,
    WorkflowAcceptedResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "ErrorResponse",
    "HealthResponse",
    "IngestDocumentRequest",
    "ResearchQueryRequest",
    "StatusResponse",
    "WorkflowAcceptedResponse",
]
