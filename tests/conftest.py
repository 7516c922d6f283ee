"""Shared pytest fixtures for the ragflow test suite.

Provides deterministic in-memory fakes for the embedding service and the
vector index, a real SQLite relational store under ``tmp_path``, and mock
generation providers.  The fakes let pipeline tests assert exact rankings
without any network access.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from ragflow.interfaces.embedding_provider import IEmbeddingProvider
from ragflow.interfaces.llm_provider import ILLMProvider
from ragflow.interfaces.vector_store_provider import IVectorStoreProvider
from ragflow.models.rag import EmbeddingVector, VectorMatch
from ragflow.pipeline.durable import DurableWorkflowEngine, StepConfig
from ragflow.pipeline.ingestion_pipeline import IngestionPipeline
from ragflow.pipeline.orchestrator import RAGWorkflow
from ragflow.pipeline.progress_tracker import ProgressTracker
from ragflow.pipeline.research_pipeline import ResearchPipeline
from ragflow.providers.relational.sqlite_relational_store import SQLiteRelationalStore
from ragflow.providers.workflow.memory_workflow_store import MemoryWorkflowStore
from ragflow.services.batch_embedder import BatchEmbedder
from ragflow.services.chunker import TextChunker
from ragflow.services.planner import QueryPlanner
from ragflow.services.retriever import Retriever
from ragflow.services.synthesizer import AnswerSynthesizer

# ---------------------------------------------------------------------------
# Deterministic fakes
# ---------------------------------------------------------------------------


class HashingEmbeddingProvider(IEmbeddingProvider):
    """Embeds text as a 26-dim letter histogram; records every call."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self._vector(text) for text in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return 26

    def get_provider_name(self) -> str:
        return "hashing"

    def is_available(self) -> bool:
        return True

    @staticmethod
    def _vector(text: str) -> list[float]:
        counts = [0.0] * 26
        for char in text.lower():
            if "a" <= char <= "z":
                counts[ord(char) - ord("a")] += 1.0
        return counts


class InMemoryVectorStore(IVectorStoreProvider):
    """Cosine-similarity vector index kept in a dict."""

    def __init__(self) -> None:
        self.items: dict[str, EmbeddingVector] = {}
        self.upsert_calls = 0

    async def upsert(self, items: list[EmbeddingVector]) -> int:
        self.upsert_calls += 1
        for item in items:
            self.items[item.id] = item
        return len(items)

    async def query(
        self,
        vector: list[float],
        top_k: int = 3,
        return_metadata: bool = False,
    ) -> list[VectorMatch]:
        scored = [
            VectorMatch(id=item.id, score=_cosine(vector, item.values))
            for item in self.items.values()
        ]
        scored.sort(key=lambda m: (-m.score, m.id))
        return scored[:top_k]

    async def count(self) -> int:
        return len(self.items)

    def get_provider_name(self) -> str:
        return "in_memory"

    def is_available(self) -> bool:
        return True


def _cosine(a: list[float], b: list[float]) -> float:
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / (norm_a * norm_b)


# ---------------------------------------------------------------------------
# Provider fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedding_provider() -> HashingEmbeddingProvider:
    return HashingEmbeddingProvider()


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest_asyncio.fixture
async def relational_store(tmp_path: Path) -> SQLiteRelationalStore:
    store = SQLiteRelationalStore(db_path=tmp_path / "knowledge.db")
    await store.initialize()
    return store


@pytest.fixture
def workflow_store() -> MemoryWorkflowStore:
    return MemoryWorkflowStore()


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    """Mock ILLMProvider; override ``complete.return_value`` / ``side_effect`` per test.

    The default response is a valid single-query plan.
    """
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.is_available.return_value = True
    mock.complete = AsyncMock(
        return_value='{"subQueries": ["AAAA"], "thoughtProcess": "single query"}'
    )
    return mock


@pytest.fixture
def fast_step_config() -> StepConfig:
    """Retry policy with no sleeping between attempts."""
    return StepConfig(retries=2, delay_seconds=0.0, backoff="constant")


# ---------------------------------------------------------------------------
# Pipeline assembly
# ---------------------------------------------------------------------------


@pytest.fixture
def build_workflow(
    embedding_provider: HashingEmbeddingProvider,
    vector_store: InMemoryVectorStore,
    relational_store: SQLiteRelationalStore,
    mock_llm_provider: ILLMProvider,
) -> Callable[..., dict[str, Any]]:
    """Factory wiring real services to the fakes above.

    Keyword overrides: ``chunk_size``, ``overlap``, ``batch_size``,
    ``top_k``, ``llm``.
    """

    def _build(**overrides: Any) -> dict[str, Any]:
        llm = overrides.get("llm", mock_llm_provider)
        tracker = ProgressTracker()
        embedder = BatchEmbedder(embedding_provider, batch_size=overrides.get("batch_size", 20))
        ingestion = IngestionPipeline(
            chunker=TextChunker(
                chunk_size=overrides.get("chunk_size", 500),
                overlap=overrides.get("overlap", 0),
            ),
            embedder=embedder,
            relational_store=relational_store,
            vector_store=vector_store,
            tracker=tracker,
        )
        research = ResearchPipeline(
            planner=QueryPlanner(llm),
            embedder=embedder,
            retriever=Retriever(vector_store, relational_store),
            synthesizer=AnswerSynthesizer(llm),
            default_top_k=overrides.get("top_k", 3),
            tracker=tracker,
        )
        return {
            "tracker": tracker,
            "ingestion": ingestion,
            "research": research,
            "workflow": RAGWorkflow(ingestion=ingestion, research=research, tracker=tracker),
        }

    return _build


@pytest.fixture
def engine(
    build_workflow: Callable[..., dict[str, Any]],
    workflow_store: MemoryWorkflowStore,
    fast_step_config: StepConfig,
) -> DurableWorkflowEngine:
    parts = build_workflow()
    return DurableWorkflowEngine(
        store=workflow_store,
        workflow=parts["workflow"],
        step_config=fast_step_config,
    )
