"""Single entry point dispatching workflow payloads to a pipeline.

:class:`RAGWorkflow` is what the
:class:`~ragflow.pipeline.durable.DurableWorkflowEngine` runs for every
instance.  It validates the raw payload into one variant of the
``operation``-tagged request union and hands it to the matching pipeline.
It holds no per-run state, so one instance serves every concurrent run.

    payload ──parse──→ IngestRequest   ──→ IngestionPipeline.run
                   └─→ ResearchRequest ──→ ResearchPipeline.run
"""

from __future__ import annotations

from typing import Any

import structlog

from ragflow.models.pipeline import IngestionPhase, ResearchPhase
from ragflow.models.workflow import IngestRequest, ResearchRequest, parse_workflow_payload
from ragflow.pipeline.durable import WorkflowStep
from ragflow.pipeline.ingestion_pipeline import IngestionPipeline
from ragflow.pipeline.progress_tracker import ProgressTracker
from ragflow.pipeline.research_pipeline import ResearchPipeline
from ragflow.utils.errors import PipelineError
from ragflow.utils.logging import get_logger


class RAGWorkflow:
    """Routes a workflow payload to the ingestion or research pipeline.

    Parameters
    ----------
    ingestion:
        Pipeline for ``operation == "ingest"``.
    research:
        Pipeline for ``operation == "research"``.
    tracker:
        Optional tracker; marks the instance ``FAILED`` when a run raises.
    """

    def __init__(
        self,
        ingestion: IngestionPipeline,
        research: ResearchPipeline,
        tracker: ProgressTracker | None = None,
    ) -> None:
        self._ingestion = ingestion
        self._research = research
        self._tracker = tracker
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def run(self, payload: dict[str, Any], step: WorkflowStep) -> dict[str, Any]:
        """Run the pipeline selected by ``payload["operation"]``.

        Returns
        -------
        dict
            The pipeline result serialized with camelCase keys, ready to be
            recorded as the instance output.

        Raises
        ------
        ConfigurationError
            If the payload does not validate; the instance fails without
            retry.
        """
        request = parse_workflow_payload(payload)
        self._logger.debug(
            "workflow_dispatch",
            instance_id=step.instance_id,
            operation=request.operation,
        )

        try:
            if isinstance(request, IngestRequest):
                result = await self._ingestion.run(request, step)
            elif isinstance(request, ResearchRequest):
                result = await self._research.run(request, step)
            else:
                raise PipelineError(message=f"Unknown operation: {request.operation}")
        except Exception:
            if self._tracker is not None:
                failed = (
                    IngestionPhase.FAILED
                    if isinstance(request, IngestRequest)
                    else ResearchPhase.FAILED
                )
                self._tracker.update(step.instance_id, failed, "run failed")
            raise

        return result.model_dump(mode="json", by_alias=True)
