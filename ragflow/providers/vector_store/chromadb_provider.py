"""ChromaDB vector index provider adapter.

Wraps `chromadb.PersistentClient` to implement :class:`IVectorStoreProvider`.
Uses cosine distance and converts it to a similarity score
(``1 - distance``) so that higher scores are better.  Fully local, free,
and Python-native — no external service required.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.  The env var alone
# is ignored by some ChromaDB versions, so the PostHog client is disabled
# directly and Settings(anonymized_telemetry=False) is passed below too.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from ragflow.interfaces.vector_store_provider import IVectorStoreProvider
from ragflow.models.rag import EmbeddingVector, VectorMatch
from ragflow.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    ragflow always passes pre-computed vectors, so ChromaDB's built-in
    embedding is never invoked.  Without this, ChromaDB downloads its
    default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "ragflow uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector index backed by ChromaDB with local persistence.

    ChromaDB's client is synchronous; every call is pushed onto a worker
    thread with :func:`asyncio.to_thread` so a large upsert never blocks
    the event loop that runs other workflow instances.

    Parameters
    ----------
    persist_directory:
        Directory ChromaDB persists to.
    collection_name:
        Collection holding the chunk vectors.
    dimension:
        Expected vector length.  When given, vectors of another length are
        rejected before they reach ChromaDB.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "ragflow_chunks",
        dimension: int | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._dimension = dimension
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        # Collections created by an older ChromaDB with the default
        # embedding function reject a different one with ValueError; open
        # them without one since vectors are always pre-computed.
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, items: list[EmbeddingVector]) -> int:
        """Insert or replace *items* by id."""
        if not items:
            return 0
        self._check_dimensions(items)

        ids = [item.id for item in items]
        embeddings = [item.values for item in items]
        # ChromaDB rejects empty metadata dicts on some versions.
        metadatas: list[dict[str, Any]] = [dict(item.metadata) or {"id": item.id} for item in items]

        try:
            await asyncio.to_thread(
                self._collection.upsert,
                ids=ids,
                embeddings=embeddings,
                metadatas=metadatas,
            )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_upsert", count=len(items), collection=self._collection_name)
        return len(items)

    async def query(
        self,
        vector: list[float],
        top_k: int = 3,
        return_metadata: bool = False,
    ) -> list[VectorMatch]:
        """Return up to *top_k* nearest neighbours ordered by similarity."""
        try:
            total = await asyncio.to_thread(self._collection.count)
            if total == 0:
                return []

            include = ["distances", "metadatas"] if return_metadata else ["distances"]
            results = await asyncio.to_thread(
                self._collection.query,
                query_embeddings=[vector],
                n_results=min(top_k, total),
                include=include,
            )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results["ids"][0] if results.get("ids") else []
        distances = results["distances"][0] if results.get("distances") else [0.0] * len(ids)

        matches = [
            VectorMatch(id=chunk_id, score=1.0 - float(distance))
            for chunk_id, distance in zip(ids, distances, strict=True)
        ]
        logger.debug(
            "chromadb_query",
            top_k=top_k,
            results_count=len(matches),
            top_score=matches[0].score if matches else 0.0,
        )
        return matches

    async def count(self) -> int:
        try:
            return await asyncio.to_thread(self._collection.count)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB client responds to a heartbeat."""
        try:
            self._client.heartbeat()
            return True
        except Exception:  # noqa: BLE001
            return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_dimensions(self, items: list[EmbeddingVector]) -> None:
        if self._dimension is None:
            return
        bad = [item.id for item in items if len(item.values) != self._dimension]
        if bad:
            raise RAGError(
                message=(
                    f"{len(bad)} vector(s) do not match the configured dimension "
                    f"{self._dimension}: {bad[:3]}"
                ),
                provider_name=self.get_provider_name(),
            )
