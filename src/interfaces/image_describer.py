"""Abstract base class for image-description collaborators.

Social posts often carry their real content in an image (a flyer, a
slide, a photographed bulletin).  An image describer turns that image
into prose so it can be chunked and embedded like any other text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: LLMImageDescriber (src/providers/image/)
class IImageDescriber(ABC):
    """Contract for services that describe an image referenced by URL."""

    @abstractmethod
    async def describe(self, image_url: str) -> str:
        """Return a plain-text description of the image at *image_url*.

        Raises
        ------
        src.utils.errors.ImageAnalysisError
            If the image cannot be downloaded or described.  Callers treat
            this as non-fatal.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this describer."""
