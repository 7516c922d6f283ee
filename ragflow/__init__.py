"""ragflow — durable ingestion and research pipelines for retrieval-augmented generation."""

__version__ = "0.1.0"
