"""LLM provider adapters.

Two concrete implementations of ILLMProvider (ragflow/interfaces/llm_provider.py):
    - OpenAILLMProvider    — gpt-4o-mini (also any OpenAI-compatible API)
    - AnthropicLLMProvider — Claude Sonnet

At startup, main.py creates the provider matching the available API key
(ANTHROPIC_API_KEY first, then OPENAI_API_KEY) and injects it into the
planner and the synthesizer.
"""

from ragflow.providers.llm.anthropic_provider import AnthropicLLMProvider
from ragflow.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OpenAILLMProvider"]
