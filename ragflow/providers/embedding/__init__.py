"""Embedding provider implementations.

Embeddings convert chunk text and research sub-queries into vectors that
are stored in and queried against the vector index.
"""

from ragflow.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
