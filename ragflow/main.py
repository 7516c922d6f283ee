"""ragflow FastAPI application entry point.

Wires providers, services, pipelines and the durable workflow engine
together via constructor injection, stores them on ``app.state`` at
startup, and exposes the HTTP routes.  Runtime configuration comes from
``.env`` and environment variables (:class:`Settings`); prompt-tuning
knobs come from ``config/config.yaml``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from ragflow import __version__
from ragflow.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from ragflow.api.routes import router as api_router
from ragflow.config.loader import load_config
from ragflow.config.settings import Settings
from ragflow.interfaces.embedding_provider import IEmbeddingProvider
from ragflow.interfaces.llm_provider import ILLMProvider
from ragflow.interfaces.workflow_store import IWorkflowStore
from ragflow.pipeline.durable import DurableWorkflowEngine, StepConfig
from ragflow.pipeline.ingestion_pipeline import IngestionPipeline
from ragflow.pipeline.orchestrator import RAGWorkflow
from ragflow.pipeline.progress_tracker import ProgressTracker
from ragflow.pipeline.research_pipeline import ResearchPipeline
from ragflow.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from ragflow.providers.llm.anthropic_provider import AnthropicLLMProvider
from ragflow.providers.llm.openai_provider import OpenAILLMProvider
from ragflow.providers.relational.sqlite_relational_store import SQLiteRelationalStore
from ragflow.providers.vector_store.chromadb_provider import ChromaDBProvider
from ragflow.providers.workflow.memory_workflow_store import MemoryWorkflowStore
from ragflow.providers.workflow.sqlite_workflow_store import SQLiteWorkflowStore
from ragflow.services.batch_embedder import BatchEmbedder
from ragflow.services.chunker import TextChunker
from ragflow.services.planner import QueryPlanner
from ragflow.services.retriever import Retriever
from ragflow.services.synthesizer import AnswerSynthesizer
from ragflow.utils.errors import ConfigurationError
from ragflow.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings, http_client: httpx.AsyncClient) -> ILLMProvider:
    """Select the generation provider from configured API keys.

    Priority order: Anthropic -> OpenAI.
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings, http_client=http_client)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings, http_client=http_client)
    raise ConfigurationError(
        message="No generation provider configured: set ANTHROPIC_API_KEY or OPENAI_API_KEY"
    )


def _build_embedding_provider(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> IEmbeddingProvider:
    """Return the OpenAI-compatible embedding provider."""
    if not app_settings.openai_api_key:
        raise ConfigurationError(
            message="No embedding provider configured: set OPENAI_API_KEY",
            provider_name="openai_embedding",
        )
    return OpenAIEmbeddingProvider(settings=app_settings, http_client=http_client)


def _build_workflow_store(app_settings: Settings) -> IWorkflowStore:
    backend = app_settings.workflow_backend.lower()
    if backend == "sqlite":
        return SQLiteWorkflowStore(
            db_path=app_settings.workflow_db_path,
            retention_hours=app_settings.workflow_retention_hours,
        )
    if backend == "memory":
        return MemoryWorkflowStore(ttl=app_settings.workflow_retention_hours * 3600)
    raise ConfigurationError(message=f"Unknown WORKFLOW_BACKEND: {app_settings.workflow_backend}")


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider, service and pipeline for the application.

    Returns a flat dict of named components to be stored on ``app.state``.

    Raises
    ------
    ConfigurationError
        If required API keys are missing or chunking/batching parameters
        are invalid.
    """
    llm_config = config.get("llm", {})

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=30.0)

    # -- Providers --
    llm = _build_llm_provider(app_settings, http_client)
    embedding_provider = _build_embedding_provider(app_settings, http_client)
    vector_store = ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
    )
    relational_store = SQLiteRelationalStore(db_path=app_settings.knowledge_db_path)
    workflow_store = _build_workflow_store(app_settings)

    # -- Services --
    chunker = TextChunker(chunk_size=app_settings.chunk_size, overlap=app_settings.chunk_overlap)
    embedder = BatchEmbedder(embedding_provider, batch_size=app_settings.embed_batch_size)
    planner = QueryPlanner(
        llm,
        temperature=llm_config.get("planner_temperature", 0.2),
        max_tokens=llm_config.get("planner_max_tokens", 800),
    )
    synthesizer = AnswerSynthesizer(
        llm,
        temperature=llm_config.get("synthesis_temperature", 0.3),
        max_tokens=llm_config.get("synthesis_max_tokens", 1500),
    )
    retriever = Retriever(
        vector_store,
        relational_store,
        max_parallel_queries=app_settings.research_max_parallel_queries,
    )

    # -- Pipelines --
    progress_tracker = ProgressTracker()
    ingestion = IngestionPipeline(
        chunker=chunker,
        embedder=embedder,
        relational_store=relational_store,
        vector_store=vector_store,
        tracker=progress_tracker,
    )
    research = ResearchPipeline(
        planner=planner,
        embedder=embedder,
        retriever=retriever,
        synthesizer=synthesizer,
        default_top_k=app_settings.research_top_k,
        tracker=progress_tracker,
    )
    workflow = RAGWorkflow(ingestion=ingestion, research=research, tracker=progress_tracker)
    engine = DurableWorkflowEngine(
        store=workflow_store,
        workflow=workflow,
        step_config=StepConfig(
            retries=app_settings.step_retries,
            delay_seconds=app_settings.step_retry_delay_seconds,
            backoff=app_settings.step_retry_backoff,
        ),
    )

    _logger.info(
        "llm_provider_selected",
        provider=llm.get_provider_name(),
        available=llm_config.get("available_providers", []),
    )

    # -- Provider registry for /health --
    provider_registry: dict[str, Any] = {
        "llm": llm.is_available(),
        "llm_provider": llm.get_provider_name(),
        "embedding": embedding_provider.is_available(),
        "workflow_store": workflow_store.get_provider_name(),
    }

    return {
        "http_client": http_client,
        "engine": engine,
        "progress_tracker": progress_tracker,
        "relational_store": relational_store,
        "workflow_store": workflow_store,
        "vector_store": vector_store,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


def _make_lifespan(app_settings: Settings, components: dict[str, Any] | None):
    @asynccontextmanager
    async def _lifespan(application: FastAPI):  # noqa: ANN202
        """Initialise stores and resume unfinished instances; cancel runs on shutdown."""
        built = components if components is not None else _build_all(app_settings)
        for key, value in built.items():
            setattr(application.state, key, value)

        await built["relational_store"].initialize()
        await built["workflow_store"].initialize()
        engine: DurableWorkflowEngine = built["engine"]
        resumed = await engine.resume_pending()

        _logger.info(
            "app_startup",
            version=__version__,
            environment=app_settings.app_env,
            workflow_store=built["workflow_store"].get_provider_name(),
            resumed_instances=resumed,
        )

        yield

        await engine.shutdown()
        http_client: httpx.AsyncClient | None = built.get("http_client")
        if http_client is not None:
            await http_client.aclose()
        _logger.info("app_shutdown", message="workflow engine stopped")

    return _lifespan


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    components: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Parameters
    ----------
    app_settings:
        Settings to build from; the module-level ``settings`` by default.
    components:
        Pre-built ``app.state`` components (must include ``engine``,
        ``progress_tracker``, ``relational_store`` and ``workflow_store``).
        When omitted they are built from *app_settings* at startup.
    """
    app_settings = app_settings or settings
    application = FastAPI(
        title="ragflow API",
        version=__version__,
        description=(
            "Durable retrieval-augmented generation workflows: ingest documents "
            "into a chunked vector knowledge base and answer research questions "
            "with cited, grounded answers."
        ),
        lifespan=_make_lifespan(app_settings, components),
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=app_settings.get_cors_origins())

    application.include_router(api_router)
    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "ragflow.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "development",
    )
