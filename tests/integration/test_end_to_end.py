"""End-to-end workflow runs through the durable engine: ingest, then research."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from ragflow.models.workflow import InstanceStatus
from ragflow.pipeline.durable import DurableWorkflowEngine


async def _run(engine: DurableWorkflowEngine, payload: dict) -> dict:
    instance_id = await engine.create_instance(payload)
    await engine.drain()
    record = await engine.get_instance_status(instance_id)
    assert record.status == InstanceStatus.COMPLETE, record.error
    return record.output


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_ingest_then_research(
        self, engine, mock_llm_provider, embedding_provider, vector_store
    ) -> None:
        ingested = await _run(
            engine,
            {
                "operation": "ingest",
                "content": "A" * 500 + "B" * 500,
                "source_url": "https://example.org/letters",
            },
        )
        document_id = ingested["documentId"]

        assert ingested["chunkCount"] == 2
        assert sorted(vector_store.items) == [f"{document_id}_0", f"{document_id}_1"]
        assert len(embedding_provider.calls) == 1

        mock_llm_provider.complete = AsyncMock(
            side_effect=[
                '```json\n{"subQueries": ["AAAA"], "thoughtProcess": "direct"}\n```',
                f"The document is mostly the letter A [Source ID: {document_id}_0]",
            ]
        )
        answered = await _run(engine, {"operation": "research", "query": "AAAA"})

        assert answered["plan"] == {"subQueries": ["AAAA"], "thoughtProcess": "direct"}
        assert [r["id"] for r in answered["results"]] == [f"{document_id}_0", f"{document_id}_1"]
        assert answered["results"][0]["score"] > answered["results"][1]["score"]
        assert answered["results"][0]["sourceUrl"] == "https://example.org/letters"
        assert answered["answer"].endswith(f"[Source ID: {document_id}_0]")
        assert answered["sources"] == ["https://example.org/letters"]

    @pytest.mark.asyncio
    async def test_concurrent_instances_are_isolated(self, engine, vector_store) -> None:
        ids = [
            await engine.create_instance({"operation": "ingest", "content": f"doc {i} " * 10})
            for i in range(5)
        ]
        await engine.drain()

        outputs = [(await engine.get_instance_status(i)).output for i in ids]
        document_ids = {o["documentId"] for o in outputs}
        assert len(document_ids) == 5
        assert len(vector_store.items) == 5

    @pytest.mark.asyncio
    async def test_bad_payload_errors_without_retry(self, engine, mock_llm_provider) -> None:
        instance_id = await engine.create_instance({"operation": "summarize"})
        await engine.drain()

        record = await engine.get_instance_status(instance_id)
        assert record.status == InstanceStatus.ERRORED
        assert "Invalid workflow payload" in record.error
        mock_llm_provider.complete.assert_not_called()
