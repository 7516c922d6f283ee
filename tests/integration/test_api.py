"""Integration tests for the HTTP API.

The app is assembled by ``create_app`` with real services wired to the
in-memory fakes from ``tests/conftest.py``.  ``TestClient`` runs the
lifespan, so workflow instances execute in the background exactly as in
production and are observed by polling ``/api/status``.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from ragflow.config.settings import Settings
from ragflow.main import create_app
from ragflow.models.workflow import NO_INFORMATION_ANSWER
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
from ragflow.utils.errors import StoreError


def _components(tmp_path: Path, llm, embedding_provider, vector_store) -> dict[str, Any]:
    relational_store = SQLiteRelationalStore(db_path=tmp_path / "knowledge.db")
    workflow_store = MemoryWorkflowStore()
    tracker = ProgressTracker()
    embedder = BatchEmbedder(embedding_provider, batch_size=20)
    ingestion = IngestionPipeline(
        chunker=TextChunker(chunk_size=500),
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
        tracker=tracker,
    )
    engine = DurableWorkflowEngine(
        store=workflow_store,
        workflow=RAGWorkflow(ingestion=ingestion, research=research, tracker=tracker),
        step_config=StepConfig(retries=1, delay_seconds=0.0),
    )
    return {
        "engine": engine,
        "progress_tracker": tracker,
        "relational_store": relational_store,
        "workflow_store": workflow_store,
        "vector_store": vector_store,
        "provider_registry": {"llm": True, "llm_provider": "mock-llm", "embedding": True},
    }


@pytest.fixture
def components(tmp_path, mock_llm_provider, embedding_provider, vector_store) -> dict[str, Any]:
    return _components(tmp_path, mock_llm_provider, embedding_provider, vector_store)


@pytest.fixture
def client(components):
    app = create_app(app_settings=Settings(cors_origins="*"), components=components)
    with TestClient(app) as test_client:
        yield test_client


def _wait_for_terminal(client: TestClient, instance_id: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        response = client.get("/api/status", params={"id": instance_id})
        assert response.status_code == 200
        body = response.json()
        if body["status"] in ("complete", "errored"):
            return body
        assert time.monotonic() < deadline, f"instance {instance_id} still {body['status']}"
        time.sleep(0.02)


class TestWorkflowEndpoints:
    def test_ingest_then_status(self, client: TestClient) -> None:
        response = client.post(
            "/api/ingest",
            json={"content": "A" * 500 + "B" * 500, "sourceUrl": "https://example.org/ab"},
        )

        assert response.status_code == 202
        accepted = response.json()
        assert accepted["status"] == "queued"
        assert accepted["statusUrl"] == f"/api/status?id={accepted['id']}"

        body = _wait_for_terminal(client, accepted["id"])
        assert body["status"] == "complete"
        assert body["phase"] == "DONE"
        assert body["output"]["status"] == "ingested"
        assert body["output"]["chunkCount"] == 2
        assert "error" not in body

    def test_empty_ingest(self, client: TestClient) -> None:
        accepted = client.post("/api/ingest", json={"content": ""}).json()

        body = _wait_for_terminal(client, accepted["id"])
        assert body["output"]["status"] == "empty"
        assert body["output"]["chunkCount"] == 0

    def test_research_flow(self, client: TestClient, mock_llm_provider) -> None:
        ingest = client.post(
            "/api/ingest",
            json={"content": "A" * 500 + "B" * 500, "sourceUrl": "https://example.org/ab"},
        ).json()
        document_id = _wait_for_terminal(client, ingest["id"])["output"]["documentId"]
        mock_llm_provider.complete = AsyncMock(
            side_effect=['{"subQueries": ["AAAA"]}', "Mostly A [Source ID: x]"]
        )

        response = client.post("/api/research", json={"query": "AAAA", "topK": 2})
        assert response.status_code == 202
        assert response.json()["status"] == "thinking"

        body = _wait_for_terminal(client, response.json()["id"])
        output = body["output"]
        assert output["answer"] == "Mostly A [Source ID: x]"
        assert output["results"][0]["id"] == f"{document_id}_0"
        assert len(output["results"]) == 2
        assert output["sources"] == ["https://example.org/ab"]

    def test_research_on_empty_knowledge_base(self, client: TestClient) -> None:
        accepted = client.post("/api/research", json={"query": "anything"}).json()

        body = _wait_for_terminal(client, accepted["id"])
        assert body["output"]["answer"] == NO_INFORMATION_ANSWER

    def test_errored_instance_reports_error(self, client: TestClient, mock_llm_provider) -> None:
        mock_llm_provider.complete = AsyncMock(side_effect=RuntimeError("model offline"))

        accepted = client.post("/api/research", json={"query": "q"}).json()

        body = _wait_for_terminal(client, accepted["id"])
        assert body["status"] == "errored"
        assert "model offline" in body["error"]
        assert "output" not in body


class TestStatusEndpoint:
    def test_missing_id(self, client: TestClient) -> None:
        response = client.get("/api/status")
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing ID"

    def test_unknown_id(self, client: TestClient) -> None:
        response = client.get("/api/status", params={"id": "does-not-exist"})
        assert response.status_code == 404


class TestValidation:
    @pytest.mark.parametrize(
        ("path", "body"),
        [
            ("/api/ingest", {}),
            ("/api/research", {"query": ""}),
            ("/api/research", {"query": "q", "topK": 0}),
        ],
    )
    def test_bad_bodies_rejected(self, client: TestClient, path: str, body: dict) -> None:
        assert client.post(path, json=body).status_code == 422


class TestHealthAndErrors:
    def test_health_healthy(self, client: TestClient) -> None:
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["providers"]["vector_store"] is True
        assert body["providers"]["vector_count"] == 0

    def test_health_degraded(self, components) -> None:
        components["provider_registry"] = {"llm": False, "embedding": True}
        app = create_app(app_settings=Settings(), components=components)
        with TestClient(app) as client:
            assert client.get("/api/health").json()["status"] == "degraded"

    def test_application_error_becomes_json_500(self, components) -> None:
        engine: DurableWorkflowEngine = components["engine"]
        engine.create_instance = AsyncMock(side_effect=StoreError(message="disk full"))
        app = create_app(app_settings=Settings(), components=components)

        with TestClient(app) as client:
            response = client.post("/api/ingest", json={"content": "x"})

        assert response.status_code == 500
        assert response.json() == {"error": "StoreError", "detail": "disk full"}
