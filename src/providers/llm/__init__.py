"""LLM provider adapters.

Three concrete implementations of ILLMProvider (src/interfaces/llm_provider.py):
    - AnthropicLLMProvider — Claude via the Messages API
    - OpenAILLMProvider    — gpt-4o-mini (also OpenAI-compatible hosts)
    - OllamaLLMProvider    — local models via an Ollama server

At startup, main.py picks the first one with credentials configured, in
that order, and injects it into the RecommendationDispatcher.
"""

from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider", "AnthropicLLMProvider", "OllamaLLMProvider"]
