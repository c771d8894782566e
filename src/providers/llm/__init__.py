"""LLM provider adapters used for post image description.

Two concrete implementations of ILLMProvider (src/interfaces/llm_provider.py):
    - AnthropicLLMProvider -- Claude Sonnet vision
    - OpenAILLMProvider    -- gpt-4o-mini (also supports OpenAI-compatible APIs)

At startup, src/bootstrap.py picks the first provider with a configured API key.
"""

from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OpenAILLMProvider"]
