"""Utility modules for the knowledge-base engine.

- **errors** -- Exception hierarchy rooted at KnowledgeBaseError; each
  ingestion stage raises its own subclass so callers can tell a bad input
  from a fetch failure from a store failure.
- **image_preprocessor** -- Pillow-based resizing and re-encoding of post
  images before they are sent to a vision model.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

# -- Exception hierarchy ---------------------------------------------------
from src.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    EmbeddingError,
    FetchError,
    ImageAnalysisError,
    IndexWriteError,
    KnowledgeBaseError,
    LLMError,
    ValidationError,
)

# -- Image preparation for vision models -----------------------------------
from src.utils.image_preprocessor import ImagePreprocessor

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "EmbeddingError",
    "FetchError",
    "ImageAnalysisError",
    "ImagePreprocessor",
    "IndexWriteError",
    "KnowledgeBaseError",
    "LLMError",
    "ValidationError",
    "configure_logging",
    "get_logger",
]
