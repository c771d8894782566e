"""Abstract base class for vision-capable LLM service providers.

The ingestion engine only needs an LLM for one job: turning an image
attached to a social post into searchable text.  Implementations wrap the
Anthropic API (Claude) or OpenAI.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider
# Located in: src/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used to describe post images."""

    @abstractmethod
    async def vision_extract(self, image_bytes: bytes, prompt: str) -> str:
        """Analyse an image using the model's vision capability.

        Parameters
        ----------
        image_bytes:
            Raw bytes of the image to analyse.
        prompt:
            A natural-language instruction describing what to extract or
            identify in the image.

        Returns
        -------
        str
            The model's text response describing the image.

        Raises
        ------
        src.utils.errors.LLMError
            If the API call fails or returns no text.
        """

    @abstractmethod
    def supports_vision(self) -> bool:
        """Return ``True`` if this provider can process image inputs."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"anthropic"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are present.  Makes no API call."""
