"""Abstract base class for vector-index providers.

Defines the contract for storing pre-computed chunk vectors and running
nearest-neighbour queries against them.  The index never embeds text
itself: vectors always arrive from the
:class:`~ragflow.services.batch_embedder.BatchEmbedder`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ragflow.models.rag import EmbeddingVector, VectorMatch


# Concrete implementation: ChromaDBProvider (ragflow/providers/vector_store/)
# ChromaDB persists to CHROMADB_PERSIST_DIR and scores with cosine similarity.
class IVectorStoreProvider(ABC):
    """Contract for the vector index used by both pipelines.

    Writes are upserts keyed by chunk id, so re-running a persist step
    after a crash overwrites rather than duplicates.
    """

    @abstractmethod
    async def upsert(self, items: list[EmbeddingVector]) -> int:
        """Insert or replace vectors by id.

        Returns
        -------
        int
            Number of vectors written.

        Raises
        ------
        ragflow.utils.errors.RAGError
            If the index rejects the write.
        """

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        top_k: int = 3,
        return_metadata: bool = False,
    ) -> list[VectorMatch]:
        """Return up to *top_k* nearest neighbours of *vector*.

        Parameters
        ----------
        vector:
            Query embedding, same dimension as the stored vectors.
        top_k:
            Maximum number of matches to return.
        return_metadata:
            Accepted for interface parity with hosted indexes; matches only
            carry ``id`` and ``score`` because hydration reads the
            relational store.

        Returns
        -------
        list[VectorMatch]
            Matches ordered by descending similarity.  An empty index
            returns an empty list.
        """

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored vectors."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this vector index."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the index is reachable."""
