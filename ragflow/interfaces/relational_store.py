"""Abstract base class for the relational store holding documents and chunks.

The store exposes only the three capabilities the pipelines rely on:
parameterized statements, batched atomic multi-statement writes, and
``SELECT ... WHERE id IN (...)`` lookups.  Schema ownership stays with the
concrete adapter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, NamedTuple


class Statement(NamedTuple):
    """A parameterized SQL statement queued for :meth:`IRelationalStore.batch`."""

    sql: str
    params: tuple[Any, ...] = ()


# Concrete implementation: SQLiteRelationalStore (ragflow/providers/relational/)
class IRelationalStore(ABC):
    """Contract for the document/chunk metadata store."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if they don't exist."""

    @abstractmethod
    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a single parameterized statement and commit it.

        Returns
        -------
        int
            Rows affected.
        """

    @abstractmethod
    async def batch(self, statements: Sequence[Statement]) -> None:
        """Run several statements in one transaction.

        Either every statement commits or none does.

        Raises
        ------
        ragflow.utils.errors.StoreError
            If any statement fails; the transaction is rolled back.
        """

    @abstractmethod
    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run a query and return every row as a column-name keyed dict."""

    @abstractmethod
    async def select_in(self, sql_template: str, ids: Sequence[str]) -> list[dict[str, Any]]:
        """Run an ``IN (...)`` lookup.

        Parameters
        ----------
        sql_template:
            SQL containing a single ``{placeholders}`` marker where the
            ``?, ?, ...`` list is substituted.
        ids:
            Values bound to the placeholders.  An empty sequence returns
            ``[]`` without touching the database.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
