"""In-memory workflow store using cachetools.TTLCache.

Suitable for tests and single-process throwaway deployments: instances and
step results live only as long as the process (and at most ``ttl``
seconds), so nothing is resumed after a restart.  Can be swapped for
:class:`~ragflow.providers.workflow.sqlite_workflow_store.SQLiteWorkflowStore`
via the IWorkflowStore interface.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

import structlog
from cachetools import TTLCache

from ragflow.interfaces.workflow_store import IWorkflowStore
from ragflow.models.workflow import InstanceRecord, InstanceStatus
from ragflow.utils.errors import StoreError

logger = structlog.get_logger(logger_name=__name__)


class MemoryWorkflowStore(IWorkflowStore):
    """Process-local instance and step-result store.

    Parameters
    ----------
    max_instances:
        Maximum number of instances kept before the least-recently-used one
        is evicted together with its step results.
    ttl:
        Time-to-live in seconds for every instance.
    """

    def __init__(self, max_instances: int = 10_000, ttl: int = 72 * 3600) -> None:
        self._instances: TTLCache[str, InstanceRecord] = TTLCache(maxsize=max_instances, ttl=ttl)
        self._steps: TTLCache[str, dict[str, str]] = TTLCache(maxsize=max_instances, ttl=ttl)

    async def initialize(self) -> None:
        logger.info("workflow_store_initialized", backend="memory")

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    async def create_instance(self, instance_id: str, payload: dict[str, Any]) -> InstanceRecord:
        if instance_id in self._instances:
            raise StoreError(
                message=f"Workflow instance {instance_id} already exists",
                provider_name=self.get_provider_name(),
            )
        now = datetime.now(timezone.utc)
        record = InstanceRecord(
            instance_id=instance_id,
            payload=copy.deepcopy(payload),
            status=InstanceStatus.QUEUED,
            created_at=now,
            updated_at=now,
        )
        self._instances[instance_id] = record
        self._steps[instance_id] = {}
        return record

    async def get_instance(self, instance_id: str) -> InstanceRecord | None:
        return self._instances.get(instance_id)

    async def update_instance(
        self,
        instance_id: str,
        status: InstanceStatus,
        output: Any | None = None,
        error: str | None = None,
    ) -> None:
        record = self._instances.get(instance_id)
        if record is None:
            raise StoreError(
                message=f"Workflow instance {instance_id} is unknown or expired",
                provider_name=self.get_provider_name(),
            )
        self._instances[instance_id] = record.model_copy(
            update={
                "status": status,
                "output": copy.deepcopy(output),
                "error": error,
                "updated_at": datetime.now(timezone.utc),
            }
        )

    async def list_instances(self, statuses: Iterable[InstanceStatus]) -> list[str]:
        wanted = set(statuses)
        records = [r for r in self._instances.values() if r.status in wanted]
        records.sort(key=lambda r: (r.created_at, r.instance_id))
        return [r.instance_id for r in records]

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def get_step_result(self, instance_id: str, step_name: str) -> str | None:
        return self._steps.get(instance_id, {}).get(step_name)

    async def save_step_result(self, instance_id: str, step_name: str, result_json: str) -> str:
        steps = self._steps.get(instance_id)
        if steps is None:
            raise StoreError(
                message=f"Workflow instance {instance_id} is unknown or expired",
                provider_name=self.get_provider_name(),
            )
        return steps.setdefault(step_name, result_json)

    def get_provider_name(self) -> str:
        return "memory_workflow_store"
