"""Abstract base class for durable workflow persistence.

The workflow store is what makes a step "durable": it keeps every
instance's payload and status plus the JSON result of each named step, so
the :class:`~ragflow.pipeline.durable.DurableWorkflowEngine` can replay an
instance after a crash without repeating completed side effects.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from ragflow.models.workflow import InstanceRecord, InstanceStatus


# Concrete implementations:
#   SQLiteWorkflowStore  — aiosqlite, survives process restarts (default)
#   MemoryWorkflowStore  — cachetools TTLCache, process-local
# Located in: ragflow/providers/workflow/
class IWorkflowStore(ABC):
    """Contract for instance and step-result persistence."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backing storage (tables, pruning)."""

    @abstractmethod
    async def create_instance(self, instance_id: str, payload: dict[str, Any]) -> InstanceRecord:
        """Persist a new ``queued`` instance."""

    @abstractmethod
    async def get_instance(self, instance_id: str) -> InstanceRecord | None:
        """Return the instance record, or ``None`` if unknown."""

    @abstractmethod
    async def update_instance(
        self,
        instance_id: str,
        status: InstanceStatus,
        output: Any | None = None,
        error: str | None = None,
    ) -> None:
        """Set the instance status and, for terminal states, its output or error."""

    @abstractmethod
    async def list_instances(self, statuses: Iterable[InstanceStatus]) -> list[str]:
        """Return ids of instances in any of *statuses*, oldest first."""

    @abstractmethod
    async def get_step_result(self, instance_id: str, step_name: str) -> str | None:
        """Return the stored JSON text for a step, or ``None`` if it never completed.

        A step whose function returned ``None`` is stored as the JSON text
        ``"null"``, which is distinct from a missing step.
        """

    @abstractmethod
    async def save_step_result(self, instance_id: str, step_name: str, result_json: str) -> str:
        """Store a step result unless one already exists.

        Returns
        -------
        str
            The JSON text that is now authoritative for the step.  When two
            runners race, the first writer wins and both see its value.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
