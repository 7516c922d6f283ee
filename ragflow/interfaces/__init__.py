"""Public interface definitions for every external collaborator.

The inference services, the stores and the durable-step substrate are
accessed exclusively through the abstract base classes defined in this
package.  Concrete adapters implement them and are injected into the
services and pipelines at construction time (see ``ragflow/main.py``), so
tests can substitute fakes without patching module globals.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations (in ragflow/providers/)
    ─────────────────────────────────────────────────────────────────────
    ILLMProvider               →  OpenAILLMProvider, AnthropicLLMProvider
    IEmbeddingProvider         →  OpenAIEmbeddingProvider
    IVectorStoreProvider       →  ChromaDBProvider
    IRelationalStore           →  SQLiteRelationalStore
    IWorkflowStore             →  SQLiteWorkflowStore, MemoryWorkflowStore
"""

from ragflow.interfaces.embedding_provider import IEmbeddingProvider
from ragflow.interfaces.llm_provider import ILLMProvider
from ragflow.interfaces.relational_store import IRelationalStore, Statement
from ragflow.interfaces.vector_store_provider import IVectorStoreProvider
from ragflow.interfaces.workflow_store import IWorkflowStore

__all__ = [
    "IEmbeddingProvider",
    "ILLMProvider",
    "IRelationalStore",
    "IVectorStoreProvider",
    "IWorkflowStore",
    "Statement",
]
