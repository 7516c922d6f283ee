"""Parallel vector search and relational hydration for research.

The retriever owns the two store-facing halves of the research pipeline:

* :meth:`Retriever.search` runs one nearest-neighbour query per sub-query
  vector concurrently and unions the matches.
* :meth:`Retriever.hydrate` loads chunk text and the owning document's
  source URL for a set of chunk ids with a single ``IN (...)`` lookup.

Neither method swallows store failures; a failed query fails the whole
step so the workflow engine retries it.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from ragflow.interfaces.relational_store import IRelationalStore
from ragflow.interfaces.vector_store_provider import IVectorStoreProvider
from ragflow.models.rag import VectorMatch
from ragflow.utils.concurrency import throttled_gather
from ragflow.utils.logging import get_logger

_HYDRATE_SQL = (
    "SELECT c.id, c.document_id, c.chunk_index, c.content, d.source_url "
    "FROM chunks c LEFT JOIN documents d ON d.id = c.document_id "
    "WHERE c.id IN ({placeholders})"
)


class Retriever:
    """Fans sub-query vectors out to the vector index and hydrates hits.

    Parameters
    ----------
    vector_store:
        Vector index queried once per sub-query.
    relational_store:
        Source of chunk text and document source URLs.
    max_parallel_queries:
        Upper bound on concurrent vector queries.
    """

    def __init__(
        self,
        vector_store: IVectorStoreProvider,
        relational_store: IRelationalStore,
        max_parallel_queries: int = 3,
    ) -> None:
        self._vector_store = vector_store
        self._relational_store = relational_store
        self._max_parallel_queries = max(1, max_parallel_queries)
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def search(self, vectors: list[list[float]], top_k: int) -> list[VectorMatch]:
        """Query every vector concurrently and return the union of matches.

        Matches are returned in query order; repeats across queries are
        kept so the ranker can pick the best score per chunk.
        """
        if not vectors:
            return []

        semaphore = asyncio.Semaphore(self._max_parallel_queries)
        per_query = await throttled_gather(
            [self._vector_store.query(vector, top_k=top_k) for vector in vectors],
            semaphore=semaphore,
        )

        matches = [match for result in per_query for match in result]
        self._logger.info(
            "vector_search_complete",
            queries=len(vectors),
            top_k=top_k,
            matches=len(matches),
            provider=self._vector_store.get_provider_name(),
        )
        return matches

    async def hydrate(self, chunk_ids: list[str]) -> list[dict[str, Any]]:
        """Load chunk rows joined to their document's ``source_url``."""
        if not chunk_ids:
            return []
        rows = await self._relational_store.select_in(_HYDRATE_SQL, chunk_ids)

        missing = set(chunk_ids) - {row["id"] for row in rows}
        if missing:
            self._logger.warning(
                "hydration_rows_missing",
                requested=len(chunk_ids),
                missing=sorted(missing),
            )
        return rows
