"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ─────────────────────────────────────────────────
#
# Settings are read from TWO sources (in priority order):
#
#   1. **Environment variables** — e.g., OPENAI_API_KEY=sk-abc123
#   2. **.env file** — key=value lines in the project root .env file
#
# Field name `openai_api_key` maps to env var `OPENAI_API_KEY`.
# Defaults apply when neither source defines a field.
#
# Chunking, batching and retry knobs live here too so that one deploy can
# tune them without code changes; invalid combinations are rejected by the
# components themselves with a ConfigurationError at startup.
# ──────────────────────────────────────────────────────────────────────
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """ragflow application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Generation / embedding providers ===
    # Empty string = "not configured".  Anthropic wins over OpenAI for
    # generation when both keys are present; embeddings always use OpenAI.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints (TogetherAI, etc.)
    openai_text_model: str = ""  # Defaults to gpt-4o-mini
    openai_embedding_model: str = ""  # Defaults to text-embedding-3-small
    anthropic_api_key: str = ""
    anthropic_model: str = ""  # Defaults to claude-sonnet-4-20250514
    llm_timeout_seconds: float = 25.0

    # === Knowledge base ===
    knowledge_db_path: str = "data/knowledge.db"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "ragflow_chunks"

    # === Ingestion ===
    chunk_size: int = 500
    chunk_overlap: int = 0
    embed_batch_size: int = 20

    # === Research ===
    research_top_k: int = 3
    research_max_parallel_queries: int = 3

    # === Durable workflows ===
    # "sqlite" persists instances and step results across restarts;
    # "memory" keeps them in a TTL cache (tests, throwaway deployments).
    workflow_backend: str = "sqlite"
    workflow_db_path: str = "data/workflows.db"
    workflow_retention_hours: int = 72
    step_retries: int = 3
    step_retry_delay_seconds: float = 1.0
    step_retry_backoff: Literal["exponential", "constant"] = "exponential"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: str = "*"  # Comma-separated list

    def get_available_llm_providers(self) -> list[str]:
        """Return a list of generation provider names that have API keys configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        return providers

    def get_cors_origins(self) -> list[str]:
        """Split ``cors_origins`` into a list, dropping blanks."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
