"""Grounded answer synthesis over ranked passages.

Builds a context block in which every passage is labelled with its chunk
id, then asks the generation service to answer strictly from that context
and to cite the ids it relied on.  With no passages there is nothing to
ground an answer on, so the fixed no-information answer is returned
without calling the service.
"""

from __future__ import annotations

import structlog

from ragflow.interfaces.llm_provider import ILLMProvider
from ragflow.models.rag import SearchResult
from ragflow.models.workflow import NO_INFORMATION_ANSWER

logger = structlog.get_logger(logger_name=__name__)


def build_context(results: list[SearchResult]) -> str:
    """Render passages as ``[Source ID: {id}]\\n{content}`` blocks separated by blank lines."""
    return "\n\n".join(f"[Source ID: {r.id}]\n{r.content}" for r in results)


class AnswerSynthesizer:
    """Generates a cited answer from ranked passages."""

    _SYSTEM_PROMPT = (
        "You are an expert research assistant.\n"
        "Answer the user's question strictly based on the provided context.\n"
        "Cite the Source ID in square brackets, e.g. [Source ID: abc_0], for every "
        "claim you make.\n"
        "Do not use knowledge that is not contained in the context. If the context "
        "does not contain the answer, say so."
    )

    def __init__(self, llm: ILLMProvider, temperature: float = 0.3, max_tokens: int = 1500) -> None:
        self._llm = llm
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def synthesize(self, query: str, results: list[SearchResult]) -> str:
        """Return the grounded answer, or the no-information answer for empty *results*."""
        if not results:
            logger.info("synthesis_skipped_no_context", query_length=len(query))
            return NO_INFORMATION_ANSWER

        user_prompt = f"Context:\n{build_context(results)}\n\nQuestion: {query}"
        answer = await self._llm.complete(
            system_prompt=self._SYSTEM_PROMPT,
            user_prompt=user_prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        logger.info(
            "answer_synthesized",
            passages=len(results),
            answer_length=len(answer),
            provider=self._llm.get_provider_name(),
        )
        return answer.strip()
