"""SQLite-backed durable workflow store.

Persists workflow instances (payload, status, output) and the JSON result
of every completed step to ``data/workflows.db``.  Because step results
survive a process restart, the engine can resume an interrupted instance
and replay its completed steps instead of re-running them.

Step rows are written with ``INSERT ... ON CONFLICT DO NOTHING`` and read
back in the same transaction, so the first writer of a
``(instance_id, step_name)`` pair always wins.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from ragflow.interfaces.workflow_store import IWorkflowStore
from ragflow.models.workflow import InstanceRecord, InstanceStatus
from ragflow.utils.errors import StoreError
from ragflow.utils.logging import get_logger

_DEFAULT_DB_PATH = Path("data/workflows.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS workflow_instances (
    instance_id  TEXT PRIMARY KEY,
    payload_json TEXT NOT NULL,
    status       TEXT NOT NULL,
    output_json  TEXT,
    error        TEXT,
    created_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
    """\
CREATE TABLE IF NOT EXISTS workflow_steps (
    instance_id  TEXT NOT NULL,
    step_name    TEXT NOT NULL,
    result_json  TEXT NOT NULL,
    created_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    PRIMARY KEY (instance_id, step_name)
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_workflow_instances_status ON workflow_instances(status);",
]

_INSERT_INSTANCE_SQL = """\
INSERT INTO workflow_instances (instance_id, payload_json, status)
VALUES (?, ?, ?);
"""

_SELECT_INSTANCE_SQL = """\
SELECT instance_id, payload_json, status, output_json, error, created_at, updated_at
FROM workflow_instances
WHERE instance_id = ?;
"""

_UPDATE_INSTANCE_SQL = """\
UPDATE workflow_instances
SET status      = ?,
    output_json = ?,
    error       = ?,
    updated_at  = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
WHERE instance_id = ?;
"""

_INSERT_STEP_SQL = """\
INSERT INTO workflow_steps (instance_id, step_name, result_json)
VALUES (?, ?, ?)
ON CONFLICT(instance_id, step_name) DO NOTHING;
"""

_SELECT_STEP_SQL = """\
SELECT result_json FROM workflow_steps WHERE instance_id = ? AND step_name = ?;
"""

_PRUNE_STEPS_SQL = """\
DELETE FROM workflow_steps
WHERE instance_id IN (
    SELECT instance_id FROM workflow_instances
    WHERE status IN ('complete', 'errored')
      AND updated_at < strftime('%Y-%m-%dT%H:%M:%fZ', 'now', '-{hours} hours')
);
"""

_PRUNE_INSTANCES_SQL = """\
DELETE FROM workflow_instances
WHERE status IN ('complete', 'errored')
  AND updated_at < strftime('%Y-%m-%dT%H:%M:%fZ', 'now', '-{hours} hours');
"""


class SQLiteWorkflowStore(IWorkflowStore):
    """Durable instance and step-result persistence.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.
    retention_hours:
        Finished instances older than this are pruned on :meth:`initialize`.
        Set to ``0`` to keep everything.
    """

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH, retention_hours: int = 72) -> None:
        self._db_path = Path(db_path)
        self._retention_hours = retention_hours
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create tables and prune finished instances past retention."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL")
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            pruned = 0
            if self._retention_hours > 0:
                await db.execute(_PRUNE_STEPS_SQL.format(hours=self._retention_hours))
                cursor = await db.execute(
                    _PRUNE_INSTANCES_SQL.format(hours=self._retention_hours)
                )
                pruned = cursor.rowcount
            await db.commit()

        if pruned:
            self._logger.info(
                "workflow_instances_pruned",
                pruned=pruned,
                retention_hours=self._retention_hours,
            )
        self._logger.info("workflow_store_initialized", db_path=str(self._db_path))

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    async def create_instance(self, instance_id: str, payload: dict[str, Any]) -> InstanceRecord:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _INSERT_INSTANCE_SQL,
                    (instance_id, json.dumps(payload), InstanceStatus.QUEUED.value),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"Could not create workflow instance {instance_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        record = await self.get_instance(instance_id)
        if record is None:
            raise StoreError(
                message=f"Workflow instance {instance_id} vanished after insert",
                provider_name=self.get_provider_name(),
            )
        return record

    async def get_instance(self, instance_id: str) -> InstanceRecord | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_INSTANCE_SQL, (instance_id,))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"Could not read workflow instance {instance_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if row is None:
            return None
        return self._row_to_record(dict(row))

    async def update_instance(
        self,
        instance_id: str,
        status: InstanceStatus,
        output: Any | None = None,
        error: str | None = None,
    ) -> None:
        output_json = json.dumps(output) if output is not None else None
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _UPDATE_INSTANCE_SQL,
                    (status.value, output_json, error, instance_id),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"Could not update workflow instance {instance_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def list_instances(self, statuses: Iterable[InstanceStatus]) -> list[str]:
        values = [s.value for s in statuses]
        if not values:
            return []
        placeholders = ", ".join("?" for _ in values)
        sql = (
            "SELECT instance_id FROM workflow_instances "
            f"WHERE status IN ({placeholders}) ORDER BY created_at, instance_id"
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(sql, tuple(values))
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"Could not list workflow instances: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def get_step_result(self, instance_id: str, step_name: str) -> str | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_SELECT_STEP_SQL, (instance_id, step_name))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"Could not read step {step_name!r} of {instance_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return row[0] if row else None

    async def save_step_result(self, instance_id: str, step_name: str, result_json: str) -> str:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_INSERT_STEP_SQL, (instance_id, step_name, result_json))
                cursor = await db.execute(_SELECT_STEP_SQL, (instance_id, step_name))
                row = await cursor.fetchone()
                await db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"Could not save step {step_name!r} of {instance_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return row[0] if row else result_json

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_record(row: dict[str, Any]) -> InstanceRecord:
        return InstanceRecord(
            instance_id=row["instance_id"],
            payload=json.loads(row["payload_json"]),
            status=InstanceStatus(row["status"]),
            output=json.loads(row["output_json"]) if row["output_json"] else None,
            error=row["error"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )

    def get_provider_name(self) -> str:
        return "sqlite_workflow_store"


def _parse_timestamp(value: str) -> datetime:
    """Parse SQLite's ``strftime('%Y-%m-%dT%H:%M:%fZ')`` output as an aware UTC datetime."""
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)
