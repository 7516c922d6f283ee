"""Vector index provider implementations.

ChromaDB is the sole implementation.  It persists vectors on disk and
scores nearest neighbours with cosine similarity.  To swap it for another
index, implement IVectorStoreProvider and register it in main.py.
"""

from ragflow.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
