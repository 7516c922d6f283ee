"""Leaf services used by the ingestion and research pipelines."""

from ragflow.services.batch_embedder import DEFAULT_BATCH_SIZE, BatchEmbedder
from ragflow.services.chunker import TextChunker
from ragflow.services.planner import QueryPlanner
from ragflow.services.ranker import attach_scores, dedupe_and_rank, unique_sources
from ragflow.services.retriever import Retriever
from ragflow.services.synthesizer import AnswerSynthesizer, build_context

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "AnswerSynthesizer",
    "BatchEmbedder",
    "QueryPlanner",
    "Retriever",
    "TextChunker",
    "attach_scores",
    "build_context",
    "dedupe_and_rank",
    "unique_sources",
]
