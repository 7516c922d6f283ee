"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations may wrap OpenAI ``text-embedding-3-small``, an
OpenAI-compatible host serving ``BAAI/bge-base-en-v1.5``, or any other
embedding backend.  Batch sizing is NOT the provider's concern: the
:class:`~ragflow.services.batch_embedder.BatchEmbedder` guarantees each
call stays under the configured ceiling.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation:
#   OpenAIEmbeddingProvider — text-embedding-3-small or any OpenAI-compatible model
# Located in: ragflow/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by both pipelines."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts in one service call.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        ragflow.utils.errors.RAGError
            If the embedding API call fails.
        ragflow.utils.errors.RateLimitError
            If the provider rejected the call for rate-limit reasons.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Example values: ``1536`` (OpenAI ``text-embedding-3-small``),
        ``768`` (``BAAI/bge-base-en-v1.5``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
