"""Ingestion pipeline: document text to persisted chunks and vectors.

Every side effect runs inside a named durable step, so replaying an
instance after a crash re-uses the recorded document id, chunk list and
embeddings, and re-issues only the writes that had not been recorded as
done.  All writes are ``INSERT OR REPLACE`` / upsert keyed on stable ids,
so a write repeated after a crash leaves exactly one row per id.

Step sequence for a document of N chunks in groups of B, where B is the
embed batch size recorded by ``chunk-document`` (a resumed instance keeps
its original grouping even if the configured batch size has changed)::

    create-document
    chunk-document                  (0 chunks → status "empty", stop)
    store-document
    embed-batch-0 … embed-batch-{ceil(N/B)-1}
    persist-batch-0 … persist-batch-{ceil(N/B)-1}
"""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from typing import Any

import structlog

from ragflow.interfaces.relational_store import IRelationalStore, Statement
from ragflow.interfaces.vector_store_provider import IVectorStoreProvider
from ragflow.models.pipeline import IngestionPhase
from ragflow.models.rag import Chunk, Document, EmbeddingVector
from ragflow.models.workflow import EMPTY_DOCUMENT_MESSAGE, IngestionResult, IngestRequest
from ragflow.pipeline.durable import WorkflowStep
from ragflow.pipeline.progress_tracker import ProgressTracker
from ragflow.services.batch_embedder import BatchEmbedder
from ragflow.services.chunker import TextChunker
from ragflow.utils.logging import get_logger

_INSERT_DOCUMENT_SQL = (
    "INSERT OR REPLACE INTO documents (id, source_url, created_at, metadata) "
    "VALUES (?, ?, ?, ?)"
)
_INSERT_CHUNK_SQL = (
    "INSERT OR REPLACE INTO chunks (id, document_id, chunk_index, content) "
    "VALUES (?, ?, ?, ?)"
)

# Vector metadata "source" value for documents without a source URL.
_RAW_SOURCE = "raw"


class IngestionPipeline:
    """Chunks, embeds and persists one document per run.

    Parameters
    ----------
    chunker:
        Deterministic text splitter.
    embedder:
        Batch embedder; its ``batch_size`` sets the group size for the
        ``embed-batch-*`` and ``persist-batch-*`` steps.
    relational_store:
        Destination for document and chunk rows.
    vector_store:
        Destination for chunk vectors.
    tracker:
        Optional phase tracker for status reporting.
    """

    def __init__(
        self,
        chunker: TextChunker,
        embedder: BatchEmbedder,
        relational_store: IRelationalStore,
        vector_store: IVectorStoreProvider,
        tracker: ProgressTracker | None = None,
    ) -> None:
        self._chunker = chunker
        self._embedder = embedder
        self._relational_store = relational_store
        self._vector_store = vector_store
        self._tracker = tracker
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def run(self, request: IngestRequest, step: WorkflowStep) -> IngestionResult:
        """Ingest ``request.content`` and return the ingestion summary."""
        instance_id = step.instance_id

        async def _create_document() -> dict[str, Any]:
            document = Document(
                id=uuid.uuid4().hex,
                source_url=request.source_url,
                created_at=int(time.time() * 1000),
                metadata=request.metadata,
            )
            return document.model_dump()

        document = Document.model_validate(await step.do("create-document", _create_document))
        self._set_phase(instance_id, IngestionPhase.INIT, f"document {document.id}")
        self._logger.info(
            "ingestion_started",
            instance_id=instance_id,
            document_id=document.id,
            content_length=len(request.content),
        )

        async def _chunk_document() -> dict[str, Any]:
            chunked = self._chunker.chunk(document.id, request.content)
            # The group size is recorded with the chunks: embed-batch-i and
            # persist-batch-i must cover the same chunks on every replay.
            return {
                "batch_size": self._embedder.batch_size,
                "chunks": [c.model_dump() for c in chunked],
            }

        chunked = await step.do("chunk-document", _chunk_document)
        group_size: int = chunked["batch_size"]
        chunks = [Chunk.model_validate(c) for c in chunked["chunks"]]
        self._set_phase(instance_id, IngestionPhase.CHUNKED, f"{len(chunks)} chunks")

        if not chunks:
            self._logger.info("ingestion_empty_document", document_id=document.id)
            self._set_phase(instance_id, IngestionPhase.DONE, EMPTY_DOCUMENT_MESSAGE)
            return IngestionResult(
                status="empty",
                document_id=document.id,
                chunk_count=0,
                chunks_processed=0,
                message=EMPTY_DOCUMENT_MESSAGE,
            )

        async def _store_document() -> bool:
            await self._relational_store.execute(
                _INSERT_DOCUMENT_SQL,
                (
                    document.id,
                    document.source_url,
                    document.created_at,
                    json.dumps(document.metadata),
                ),
            )
            return True

        await step.do("store-document", _store_document)

        groups = self._group(chunks, group_size)

        vectors_by_group: list[list[list[float]]] = []
        for i, group in enumerate(groups):
            texts = [c.content for c in group]

            async def _embed_batch(texts: list[str] = texts) -> list[list[float]]:
                return await self._embedder.embed(texts)

            vectors_by_group.append(await step.do(f"embed-batch-{i}", _embed_batch))
        self._set_phase(instance_id, IngestionPhase.EMBEDDED, f"{len(groups)} batches")

        processed = 0
        for i, (group, vectors) in enumerate(zip(groups, vectors_by_group, strict=True)):

            async def _persist_batch(
                group: list[Chunk] = group,
                vectors: list[list[float]] = vectors,
            ) -> int:
                return await self._persist_group(document, group, vectors)

            processed += await step.do(f"persist-batch-{i}", _persist_batch)
        self._set_phase(instance_id, IngestionPhase.PERSISTED, f"{processed} chunks persisted")

        self._logger.info(
            "ingestion_complete",
            instance_id=instance_id,
            document_id=document.id,
            chunk_count=len(chunks),
            batches=len(groups),
        )
        self._set_phase(instance_id, IngestionPhase.DONE, f"{processed} chunks")
        return IngestionResult(
            status="ingested",
            document_id=document.id,
            chunk_count=len(chunks),
            chunks_processed=processed,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _group(chunks: list[Chunk], size: int) -> list[list[Chunk]]:
        return [chunks[start : start + size] for start in range(0, len(chunks), size)]

    async def _persist_group(
        self,
        document: Document,
        group: list[Chunk],
        vectors: list[list[float]],
    ) -> int:
        """Write one group's chunk rows and vectors concurrently.

        Either write failing fails the step; the other write is repeated
        harmlessly on retry.
        """
        statements = [
            Statement(_INSERT_CHUNK_SQL, (c.id, c.document_id, c.index, c.content)) for c in group
        ]
        items = [
            EmbeddingVector(
                id=c.id,
                values=values,
                metadata={
                    "document_id": document.id,
                    "chunk_index": c.index,
                    "source": document.source_url or _RAW_SOURCE,
                },
            )
            for c, values in zip(group, vectors, strict=True)
        ]
        await asyncio.gather(
            self._relational_store.batch(statements),
            self._vector_store.upsert(items),
        )
        return len(group)

    def _set_phase(self, instance_id: str, phase: IngestionPhase, message: str) -> None:
        if self._tracker is not None:
            self._tracker.update(instance_id, phase, message)
