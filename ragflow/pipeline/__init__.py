"""Workflow orchestration: durable steps, pipelines and the dispatching workflow."""

from ragflow.pipeline.durable import DurableWorkflowEngine, StepConfig, WorkflowStep
from ragflow.pipeline.ingestion_pipeline import IngestionPipeline
from ragflow.pipeline.orchestrator import RAGWorkflow
from ragflow.pipeline.progress_tracker import ProgressTracker
from ragflow.pipeline.research_pipeline import ResearchPipeline

__all__ = [
    "DurableWorkflowEngine",
    "IngestionPipeline",
    "ProgressTracker",
    "RAGWorkflow",
    "ResearchPipeline",
    "StepConfig",
    "WorkflowStep",
]
