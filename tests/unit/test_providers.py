"""Unit tests for the OpenAI/Anthropic generation adapters and the OpenAI embedding adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import openai
import pytest

from ragflow.config.settings import Settings
from ragflow.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from ragflow.providers.llm.anthropic_provider import AnthropicLLMProvider
from ragflow.providers.llm.openai_provider import OpenAILLMProvider
from ragflow.utils.errors import LLMError, ProviderUnavailableError, RAGError, RateLimitError


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_text_model": "",
        "openai_embedding_model": "",
        "anthropic_api_key": "test-anthropic",
        "anthropic_model": "",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _openai_rate_limit() -> openai.RateLimitError:
    response = httpx.Response(429, request=httpx.Request("POST", "https://api.openai.com/v1/x"))
    return openai.RateLimitError(message="slow down", response=response, body=None)


# ======================================================================
# OpenAI generation
# ======================================================================


class TestOpenAILLMProvider:
    def test_is_available(self) -> None:
        assert OpenAILLMProvider(_settings()).is_available() is True
        assert OpenAILLMProvider(_settings(openai_api_key="")).is_available() is False

    def test_provider_label(self) -> None:
        assert OpenAILLMProvider(_settings()).get_provider_name() == "openai"
        compatible = OpenAILLMProvider(_settings(openai_base_url="https://api.together.xyz/v1"))
        assert compatible.get_provider_name() == "openai-compatible"

    @pytest.mark.asyncio
    async def test_complete_success_with_json_mode(self) -> None:
        mock_response = MagicMock()
        mock_response.choices = [MagicMock(message=MagicMock(content='{"ok": true}'))]
        mock_response.usage = MagicMock(total_tokens=42)
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)

        with patch("ragflow.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(_settings())
            result = await provider.complete("system", "user", json_mode=True)

        assert result == '{"ok": true}'
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    @pytest.mark.asyncio
    async def test_plain_mode_has_no_response_format(self) -> None:
        mock_response = MagicMock()
        mock_response.choices = [MagicMock(message=MagicMock(content="text"))]
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)

        with patch("ragflow.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            await OpenAILLMProvider(_settings()).complete("s", "u")

        assert "response_format" not in mock_client.chat.completions.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIError(message="bad", request=MagicMock(), body=None)
        )
        with patch("ragflow.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            with pytest.raises(LLMError):
                await OpenAILLMProvider(_settings()).complete("s", "u")

    @pytest.mark.asyncio
    async def test_rate_limit_wrapped(self) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(side_effect=_openai_rate_limit())
        with patch("ragflow.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            with pytest.raises(RateLimitError):
                await OpenAILLMProvider(_settings()).complete("s", "u")

    @pytest.mark.asyncio
    async def test_empty_content_raises(self) -> None:
        mock_response = MagicMock()
        mock_response.choices = [MagicMock(message=MagicMock(content=None))]
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)
        with patch("ragflow.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            with pytest.raises(LLMError):
                await OpenAILLMProvider(_settings()).complete("s", "u")


# ======================================================================
# Anthropic generation
# ======================================================================


class TestAnthropicLLMProvider:
    def test_provider_name_and_availability(self) -> None:
        provider = AnthropicLLMProvider(_settings())
        assert provider.get_provider_name() == "anthropic"
        assert provider.is_available() is True
        assert AnthropicLLMProvider(_settings(anthropic_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_complete_joins_text_blocks(self) -> None:
        mock_response = MagicMock()
        mock_response.content = [
            MagicMock(type="text", text="first"),
            MagicMock(type="tool_use", text="ignored"),
            MagicMock(type="text", text="second"),
        ]
        mock_response.usage = MagicMock(input_tokens=10, output_tokens=5)
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        with patch(
            "ragflow.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            result = await AnthropicLLMProvider(_settings()).complete("sys", "user")

        assert result == "first\nsecond"

    @pytest.mark.asyncio
    async def test_json_mode_extends_system_prompt(self) -> None:
        mock_response = MagicMock()
        mock_response.content = [MagicMock(type="text", text="{}")]
        mock_response.usage = MagicMock(input_tokens=1, output_tokens=1)
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        with patch(
            "ragflow.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            await AnthropicLLMProvider(_settings()).complete("sys", "user", json_mode=True)

        system = mock_client.messages.create.call_args.kwargs["system"]
        assert system.startswith("sys")
        assert "JSON" in system

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self) -> None:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(
            side_effect=anthropic.APIError(message="bad", request=MagicMock(), body=None)
        )
        with patch(
            "ragflow.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            with pytest.raises(LLMError):
                await AnthropicLLMProvider(_settings()).complete("s", "u")


# ======================================================================
# OpenAI embeddings
# ======================================================================


class TestOpenAIEmbeddingProvider:
    def test_dimension_and_name(self) -> None:
        provider = OpenAIEmbeddingProvider(_settings())
        assert provider.get_dimension() == 1536
        assert provider.get_provider_name() == "openai_embedding"

    @pytest.mark.asyncio
    async def test_embed_single_request(self) -> None:
        mock_response = MagicMock()
        mock_response.data = [MagicMock(embedding=[0.1, 0.2]), MagicMock(embedding=[0.3, 0.4])]
        mock_response.usage = MagicMock(total_tokens=8)
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=mock_response)

        with patch(
            "ragflow.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            vectors = await OpenAIEmbeddingProvider(_settings()).embed(["a", "b"])

        assert vectors == [[0.1, 0.2], [0.3, 0.4]]
        assert mock_client.embeddings.create.await_count == 1
        assert mock_client.embeddings.create.call_args.kwargs["input"] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty_input_skips_request(self) -> None:
        mock_client = AsyncMock()
        with patch(
            "ragflow.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            assert await OpenAIEmbeddingProvider(_settings()).embed([]) == []
        mock_client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIError(message="bad", request=MagicMock(), body=None)
        )
        with patch(
            "ragflow.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            with pytest.raises(RAGError):
                await OpenAIEmbeddingProvider(_settings()).embed(["a"])

    @pytest.mark.asyncio
    async def test_rate_limit_wrapped(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(side_effect=_openai_rate_limit())
        with patch(
            "ragflow.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            with pytest.raises(RateLimitError):
                await OpenAIEmbeddingProvider(_settings()).embed(["a"])

    @pytest.mark.asyncio
    async def test_oversized_request_rejected(self) -> None:
        mock_client = AsyncMock()
        with patch(
            "ragflow.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            with pytest.raises(RAGError):
                await OpenAIEmbeddingProvider(_settings()).embed(["x"] * 2049)
        mock_client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_connection_error_marks_provider_unavailable(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIConnectionError(
                request=httpx.Request("POST", "https://api.openai.com/v1/embeddings")
            )
        )
        with patch(
            "ragflow.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            with pytest.raises(ProviderUnavailableError):
                await OpenAIEmbeddingProvider(_settings()).embed(["a"])
