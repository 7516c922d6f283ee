"""Query planning: break a research question into 1-3 focused sub-queries.

The reasoning model is asked for a JSON object
``{"subQueries": [...], "thoughtProcess": "..."}``.  Models routinely wrap
that object in markdown fences, prefix it with chatter, or ignore the
format altogether, so the response is parsed defensively.  Anything that
does not yield at least one usable sub-query degrades to a single-query
plan built from the user's original question; that fallback is a normal
outcome, not an error.

Transport failures (timeouts, rate limits) are NOT absorbed: they
propagate so the durable step can retry the call.
"""

from __future__ import annotations

import json
import re
from typing import Any

import structlog

from ragflow.interfaces.llm_provider import ILLMProvider
from ragflow.models.rag import AgentPlan

logger = structlog.get_logger(logger_name=__name__)

MAX_SUB_QUERIES = 3

# Matches ```json ... ``` or ``` ... ``` fences around the model's JSON.
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

_FALLBACK_RATIONALE = (
    "Planner output could not be parsed as a sub-query plan; "
    "falling back to the original query."
)


class QueryPlanner:
    """Produces an :class:`AgentPlan` for a research question.

    Parameters
    ----------
    llm:
        The reasoning/generation service.
    temperature, max_tokens:
        Sampling parameters for the planning call.
    """

    _SYSTEM_PROMPT = (
        "You are a research planner for a retrieval system. Break the user's question "
        f"into between 1 and {MAX_SUB_QUERIES} short, self-contained search queries that "
        "together cover everything needed to answer it. Prefer a single query when the "
        "question is already specific.\n\n"
        "Respond with a JSON object with exactly this structure:\n"
        '{"subQueries": ["first query", "second query"], '
        '"thoughtProcess": "one or two sentences explaining the split"}'
    )

    def __init__(self, llm: ILLMProvider, temperature: float = 0.2, max_tokens: int = 800) -> None:
        self._llm = llm
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def plan(self, query: str) -> AgentPlan:
        """Ask the model for sub-queries; fall back to ``[query]`` on malformed output."""
        raw = await self._llm.complete(
            system_prompt=self._SYSTEM_PROMPT,
            user_prompt=f"Question: {query}",
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            json_mode=True,
        )

        try:
            parsed = self._parse_llm_response(raw)
            sub_queries = self._clean_sub_queries(parsed.get("subQueries"))
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as exc:
            logger.warning(
                "planner_fallback",
                reason=str(exc)[:200],
                provider=self._llm.get_provider_name(),
            )
            return self.fallback_plan(query)

        thought = parsed.get("thoughtProcess")
        plan = AgentPlan(
            sub_queries=sub_queries,
            thought_process=thought if isinstance(thought, str) else "",
        )
        logger.info("query_planned", sub_queries=len(plan.sub_queries))
        return plan

    @staticmethod
    def fallback_plan(query: str) -> AgentPlan:
        """Single-query plan used whenever the model's plan is unusable."""
        return AgentPlan(sub_queries=[query], thought_process=_FALLBACK_RATIONALE)

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_llm_response(response: str) -> dict[str, Any]:
        """Extract the JSON object from a model response.

        Raises
        ------
        json.JSONDecodeError
            If no valid JSON can be extracted.
        ValueError
            If the JSON is not an object.
        """
        text = response.strip()

        fence_match = _JSON_FENCE_RE.search(text)
        if fence_match:
            text = fence_match.group(1).strip()

        # Preamble before the object ("Here is the plan: {...}").
        if not text.startswith("{"):
            brace_start = text.find("{")
            brace_end = text.rfind("}")
            if brace_start != -1 and brace_end > brace_start:
                text = text[brace_start : brace_end + 1]

        parsed = json.loads(text)
        if not isinstance(parsed, dict):
            raise ValueError("planner response is not a JSON object")
        return parsed

    @staticmethod
    def _clean_sub_queries(value: Any) -> list[str]:
        """Keep non-blank string entries, first ``MAX_SUB_QUERIES`` only.

        Raises
        ------
        KeyError
            If ``subQueries`` is absent.
        ValueError
            If no usable entry remains.
        """
        if value is None:
            raise KeyError("planner response missing 'subQueries'")
        if not isinstance(value, list):
            raise ValueError("'subQueries' is not a list")
        cleaned = [q.strip() for q in value if isinstance(q, str) and q.strip()]
        if not cleaned:
            raise ValueError("'subQueries' has no usable entries")
        return cleaned[:MAX_SUB_QUERIES]
