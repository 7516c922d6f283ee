"""Abstract base class for text-generation service providers.

Defines the contract for the large-language-model backend used for query
planning and grounded answer synthesis.  Implementations may wrap the
Anthropic API (Claude), OpenAI, or any OpenAI-compatible host.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: OpenAILLMProvider, AnthropicLLMProvider
# Located in: ragflow/providers/llm/
class ILLMProvider(ABC):
    """Contract for generation services used by the research pipeline."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
        json_mode: bool = False,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The user-facing prompt containing the actual request or data.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.
        json_mode:
            Ask the backend for a JSON object response where it supports a
            structured-output mode.  Callers must still treat the text as
            untrusted and parse it defensively.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        ragflow.utils.errors.LLMError
            If the API call fails or returns an empty response.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider.

        Example return values: ``"anthropic"``, ``"openai"``.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
