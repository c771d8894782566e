"""Image description implementations."""

from src.providers.image.llm_image_describer import LLMImageDescriber

__all__ = ["LLMImageDescriber"]
