"""Custom exception hierarchy for ragflow.

All application exceptions inherit from :class:`RAGFlowError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "sqlite") caused the failure.

The hierarchy is organized by how the workflow engine treats the error:

    RAGFlowError  (base -- catch-all for any ragflow error)
    +-- ConfigurationError       (invalid settings / payload -- never retried)
    +-- LLMError                 (generation API call failure)
    +-- RateLimitError           (provider rate-limit exceeded)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- RAGError                 (embedding or vector-index failure)
    +-- StoreError               (relational or workflow store failure)
    +-- PipelineError            (orchestration failure)
    +-- StepError                (a durable step exhausted its retries)
    +-- InstanceNotFoundError    (status query for an unknown instance)

Transient errors (LLM, rate limit, provider, RAG, store) fail the current
step and are retried by :class:`~ragflow.pipeline.durable.WorkflowStep`.
``ConfigurationError`` aborts the instance immediately.
"""


class RAGFlowError(Exception):
    """Base exception for all ragflow errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration errors (fail fast, never retried)
# ---------------------------------------------------------------------------

class ConfigurationError(RAGFlowError):
    """Raised when configuration or a workflow payload is invalid."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors (transient, retried per step)
# ---------------------------------------------------------------------------

class ProviderUnavailableError(RAGFlowError):
    """Raised when an external service or provider is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(RAGFlowError):
    """Raised when an API rate limit is exceeded.

    The step runner backs off before the next attempt, so callers never
    need to sleep on this themselves.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(RAGFlowError):
    """Raised when a generation API call fails or returns an empty response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RAGError(RAGFlowError):
    """Raised when an embedding or vector-index operation fails."""

    def __init__(
        self,
        message: str = "RAG operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StoreError(RAGFlowError):
    """Raised when the relational store or the workflow store fails."""

    def __init__(
        self,
        message: str = "Store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration errors
# ---------------------------------------------------------------------------

class PipelineError(RAGFlowError):
    """Raised when pipeline orchestration fails (unknown operation, bad step result)."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StepError(PipelineError):
    """Raised when a durable step keeps failing after all of its retries."""

    def __init__(
        self,
        message: str = "Workflow step failed",
        provider_name: str | None = None,
        step_name: str | None = None,
        attempts: int = 0,
    ) -> None:
        self._step_name = step_name
        self._attempts = attempts
        super().__init__(message=message, provider_name=provider_name)

    @property
    def step_name(self) -> str | None:
        return self._step_name

    @property
    def attempts(self) -> int:
        return self._attempts


class InstanceNotFoundError(RAGFlowError):
    """Raised when a workflow instance id is unknown to the store."""

    def __init__(
        self,
        message: str = "Workflow instance not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
