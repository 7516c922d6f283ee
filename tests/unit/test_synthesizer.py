"""Unit tests for AnswerSynthesizer and build_context."""

from __future__ import annotations

import pytest

from ragflow.models.rag import SearchResult
from ragflow.models.workflow import NO_INFORMATION_ANSWER
from ragflow.services.synthesizer import AnswerSynthesizer, build_context


def _result(chunk_id: str, content: str, score: float = 0.5) -> SearchResult:
    return SearchResult(id=chunk_id, document_id="doc", content=content, score=score)


class TestBuildContext:
    def test_labels_each_passage(self) -> None:
        context = build_context([_result("doc_0", "first"), _result("doc_1", "second")])
        assert context == "[Source ID: doc_0]\nfirst\n\n[Source ID: doc_1]\nsecond"

    def test_empty(self) -> None:
        assert build_context([]) == ""


class TestAnswerSynthesizer:
    @pytest.mark.asyncio
    async def test_empty_results_skip_generation(self, mock_llm_provider) -> None:
        answer = await AnswerSynthesizer(mock_llm_provider).synthesize("q", [])

        assert answer == NO_INFORMATION_ANSWER
        mock_llm_provider.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_prompt_contains_context_and_question(self, mock_llm_provider) -> None:
        mock_llm_provider.complete.return_value = "  Answer [Source ID: doc_0]  "
        synthesizer = AnswerSynthesizer(mock_llm_provider, temperature=0.3, max_tokens=1500)

        answer = await synthesizer.synthesize("What?", [_result("doc_0", "the facts")])

        assert answer == "Answer [Source ID: doc_0]"
        kwargs = mock_llm_provider.complete.call_args.kwargs
        assert kwargs["user_prompt"] == "Context:\n[Source ID: doc_0]\nthe facts\n\nQuestion: What?"
        assert "Source ID" in kwargs["system_prompt"]
        assert "strictly" in kwargs["system_prompt"]
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 1500
