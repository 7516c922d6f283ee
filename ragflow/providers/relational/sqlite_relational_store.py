"""SQLite-backed relational store for documents and chunks.

Persists document metadata and chunk text to a local SQLite database at
``data/knowledge.db``.  Uses ``aiosqlite`` for async I/O and opens one
short-lived connection per operation, so concurrent pipeline instances
never share a connection object.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from ragflow.interfaces.relational_store import IRelationalStore, Statement
from ragflow.utils.errors import StoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/knowledge.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS documents (
    id          TEXT PRIMARY KEY,
    source_url  TEXT,
    created_at  INTEGER,
    metadata    TEXT
);
""",
    """\
CREATE TABLE IF NOT EXISTS chunks (
    id           TEXT PRIMARY KEY,
    document_id  TEXT,
    chunk_index  INTEGER,
    content      TEXT
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chunks_doc ON chunks(document_id);",
]

_PLACEHOLDER_MARKER = "{placeholders}"


class SQLiteRelationalStore(IRelationalStore):
    """SQLite persistence for the ``documents`` and ``chunks`` tables."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the documents/chunks tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL")
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("knowledge_db_initialized", path=str(self._db_path))

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(sql, tuple(params))
                await db.commit()
                return cursor.rowcount
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"SQLite statement failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def batch(self, statements: Sequence[Statement]) -> None:
        """Run *statements* in a single transaction, rolling back on any failure."""
        if not statements:
            return

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                try:
                    for statement in statements:
                        await db.execute(statement.sql, tuple(statement.params))
                    await db.commit()
                except aiosqlite.Error:
                    await db.rollback()
                    raise
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"SQLite batch of {len(statements)} statements failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("sqlite_batch_committed", statements=len(statements))

    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, tuple(params))
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"SQLite query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return [dict(r) for r in rows]

    async def select_in(self, sql_template: str, ids: Sequence[str]) -> list[dict[str, Any]]:
        """Expand ``{placeholders}`` into ``?, ?, ...`` and run the lookup."""
        if not ids:
            return []
        if _PLACEHOLDER_MARKER not in sql_template:
            raise StoreError(
                message="select_in template is missing the {placeholders} marker",
                provider_name=self.get_provider_name(),
            )
        placeholders = ", ".join("?" for _ in ids)
        sql = sql_template.replace(_PLACEHOLDER_MARKER, placeholders)
        return await self.fetch_all(sql, tuple(ids))

    def get_provider_name(self) -> str:
        return "sqlite"
