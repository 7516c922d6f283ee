"""Utility modules for ragflow.

- **errors** -- Domain exception hierarchy rooted at RAGFlowError; the
  workflow engine decides whether to retry a step from the error class.
- **concurrency** -- semaphore-bounded ``asyncio.gather`` used for
  step-internal fan-out.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

# -- Domain exception hierarchy --------------------------------------------
from ragflow.utils.errors import (
    ConfigurationError,
    InstanceNotFoundError,
    LLMError,
    PipelineError,
    ProviderUnavailableError,
    RAGError,
    RAGFlowError,
    RateLimitError,
    StepError,
    StoreError,
)

# -- Async concurrency helpers ---------------------------------------------
from ragflow.utils.concurrency import throttled_gather

# -- Structured logging setup ----------------------------------------------
from ragflow.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "InstanceNotFoundError",
    "LLMError",
    "PipelineError",
    "ProviderUnavailableError",
    "RAGError",
    "RAGFlowError",
    "RateLimitError",
    "StepError",
    "StoreError",
    "configure_logging",
    "get_logger",
    "throttled_gather",
]
