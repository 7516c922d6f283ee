"""In-process phase tracking for running workflow instances.

The pipelines call :meth:`ProgressTracker.update` as they advance through
their phases; ``GET /api/status`` reads :meth:`ProgressTracker.get_status`
to report the current phase next to the durable instance status.

Snapshots are process-local and expire after ``ttl`` seconds.  The durable
instance status in the workflow store stays authoritative; a missing
snapshot only means the phase is unknown to this process.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from cachetools import TTLCache

from ragflow.models.pipeline import IngestionPhase, ResearchPhase
from ragflow.utils.logging import get_logger

Phase = IngestionPhase | ResearchPhase


@dataclass
class _InstanceProgress:
    """Internal snapshot of one instance's phase; never serialized directly."""

    phase: Phase
    message: str = ""


class ProgressTracker:
    """Records the latest phase reached by each workflow instance."""

    def __init__(self, max_instances: int = 10_000, ttl: int = 24 * 3600) -> None:
        self._statuses: TTLCache[str, _InstanceProgress] = TTLCache(maxsize=max_instances, ttl=ttl)
        self._logger: structlog.BoundLogger = get_logger(__name__)

    def update(self, instance_id: str, phase: Phase, message: str = "") -> None:
        """Record that *instance_id* reached *phase*.

        Parameters
        ----------
        instance_id:
            The workflow instance being tracked.
        phase:
            An ingestion or research phase.
        message:
            Short human-readable detail, e.g. ``"12 chunks"``.
        """
        self._statuses[instance_id] = _InstanceProgress(phase=phase, message=message)
        self._logger.debug(
            "progress_update",
            instance_id=instance_id,
            phase=phase.value,
            message=message,
        )

    def get_status(self, instance_id: str) -> dict[str, Any] | None:
        """Return ``{"phase", "message"}`` for *instance_id*, or ``None`` if untracked."""
        status = self._statuses.get(instance_id)
        if status is None:
            return None
        return {"phase": status.phase.value, "message": status.message}
