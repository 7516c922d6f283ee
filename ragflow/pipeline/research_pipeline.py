"""Research pipeline: question to cited answer.

Four durable steps, each replayed from the step store on retry, so a
failed synthesis call re-runs only the synthesis::

    plan-query         planner → 1-3 sub-queries (fallback: [query])
    gather-passages    one embed call, one vector query per sub-query
    rank-results       dedupe, hydrate from the relational store, sort
    synthesize-answer  cited answer, or the no-information answer
"""

from __future__ import annotations

from typing import Any

import structlog

from ragflow.models.pipeline import ResearchPhase
from ragflow.models.rag import AgentPlan, SearchResult, VectorMatch
from ragflow.models.workflow import ResearchRequest, ResearchResult
from ragflow.pipeline.durable import WorkflowStep
from ragflow.pipeline.progress_tracker import ProgressTracker
from ragflow.services.batch_embedder import BatchEmbedder
from ragflow.services.planner import QueryPlanner
from ragflow.services.ranker import attach_scores, dedupe_and_rank, unique_sources
from ragflow.services.retriever import Retriever
from ragflow.services.synthesizer import AnswerSynthesizer
from ragflow.utils.logging import get_logger


class ResearchPipeline:
    """Plans, retrieves, ranks and answers one research question per run."""

    def __init__(
        self,
        planner: QueryPlanner,
        embedder: BatchEmbedder,
        retriever: Retriever,
        synthesizer: AnswerSynthesizer,
        default_top_k: int = 3,
        tracker: ProgressTracker | None = None,
    ) -> None:
        self._planner = planner
        self._embedder = embedder
        self._retriever = retriever
        self._synthesizer = synthesizer
        self._default_top_k = default_top_k
        self._tracker = tracker
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def run(self, request: ResearchRequest, step: WorkflowStep) -> ResearchResult:
        instance_id = step.instance_id
        top_k = request.top_k or self._default_top_k
        self._set_phase(instance_id, ResearchPhase.INIT, "")
        self._logger.info("research_started", instance_id=instance_id, top_k=top_k)

        async def _plan_query() -> dict[str, Any]:
            plan = await self._planner.plan(request.query)
            return plan.model_dump()

        plan = AgentPlan.model_validate(await step.do("plan-query", _plan_query))
        self._set_phase(instance_id, ResearchPhase.PLANNED, f"{len(plan.sub_queries)} sub-queries")

        async def _gather_passages() -> list[dict[str, Any]]:
            # Sub-queries never exceed one embedding batch, so this is one call.
            vectors = await self._embedder.embed(plan.sub_queries)
            matches = await self._retriever.search(vectors, top_k=top_k)
            return [m.model_dump() for m in matches]

        matches = [
            VectorMatch.model_validate(m) for m in await step.do("gather-passages", _gather_passages)
        ]
        self._set_phase(instance_id, ResearchPhase.GATHERED, f"{len(matches)} matches")

        async def _rank_results() -> list[dict[str, Any]]:
            ranked = dedupe_and_rank((m.id, m.score) for m in matches)
            rows = await self._retriever.hydrate([chunk_id for chunk_id, _ in ranked])
            return [r.model_dump() for r in attach_scores(ranked, rows)]

        results = [
            SearchResult.model_validate(r) for r in await step.do("rank-results", _rank_results)
        ]
        self._set_phase(instance_id, ResearchPhase.RANKED, f"{len(results)} passages")

        async def _synthesize_answer() -> str:
            return await self._synthesizer.synthesize(request.query, results)

        answer = await step.do("synthesize-answer", _synthesize_answer)
        self._set_phase(instance_id, ResearchPhase.SYNTHESIZED, "")

        result = ResearchResult(
            plan=plan,
            answer=answer,
            sources=unique_sources(results),
            results=results,
        )
        self._logger.info(
            "research_complete",
            instance_id=instance_id,
            sub_queries=len(plan.sub_queries),
            passages=len(results),
            sources=len(result.sources),
        )
        self._set_phase(instance_id, ResearchPhase.DONE, "")
        return result

    def _set_phase(self, instance_id: str, phase: ResearchPhase, message: str) -> None:
        if self._tracker is not None:
            self._tracker.update(instance_id, phase, message)
