"""Batch embedding under a provider batch-size ceiling.

Hosted embedding models cap how many inputs one request may carry (20 for
the models this project targets).  :class:`BatchEmbedder` partitions a
text list into consecutive groups no larger than that ceiling, sends one
request per group, and stitches the vectors back together in input order.

The ingestion pipeline calls :meth:`BatchEmbedder.batches` and wraps each
:meth:`BatchEmbedder.embed_batch` call in its own durable step, so a
replay after a crash never re-embeds a group whose vectors were already
recorded.
"""

from __future__ import annotations

import structlog

from ragflow.interfaces.embedding_provider import IEmbeddingProvider
from ragflow.utils.errors import ConfigurationError, RAGError
from ragflow.utils.logging import get_logger

DEFAULT_BATCH_SIZE = 20


class BatchEmbedder:
    """Embeds texts in provider-sized groups while preserving order.

    Parameters
    ----------
    provider:
        The embedding service.
    batch_size:
        Maximum inputs per provider call.
    """

    def __init__(self, provider: IEmbeddingProvider, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ConfigurationError(message=f"embed batch_size must be >= 1, got {batch_size}")
        self._provider = provider
        self._batch_size = batch_size
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def batches(self, texts: list[str]) -> list[list[str]]:
        """Partition *texts* into consecutive groups of at most ``batch_size``."""
        return [
            texts[start : start + self._batch_size]
            for start in range(0, len(texts), self._batch_size)
        ]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed one group with exactly one provider call.

        Raises
        ------
        ConfigurationError
            If the group exceeds ``batch_size``.
        RAGError
            If the provider returns a different number of vectors than
            inputs; a partial group is never returned.
        """
        if not texts:
            return []
        if len(texts) > self._batch_size:
            raise ConfigurationError(
                message=f"batch of {len(texts)} exceeds embed batch_size {self._batch_size}"
            )

        vectors = await self._provider.embed(texts)
        if len(vectors) != len(texts):
            raise RAGError(
                message=f"embedding service returned {len(vectors)} vectors for {len(texts)} inputs",
                provider_name=self._provider.get_provider_name(),
            )
        return vectors

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed every text, one provider call per group, in input order."""
        groups = self.batches(texts)
        vectors: list[list[float]] = []
        for group in groups:
            vectors.extend(await self.embed_batch(group))

        if groups:
            self._logger.debug(
                "batch_embedding_complete",
                texts=len(texts),
                batches=len(groups),
                provider=self._provider.get_provider_name(),
            )
        return vectors
