"""Custom exception hierarchy for the knowledge-base ingestion engine.

All application exceptions inherit from :class:`KnowledgeBaseError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "sqlite", "httpx") caused the failure.

The hierarchy follows the ingestion pipeline:

    KnowledgeBaseError  (base -- catch-all for any engine error)
    +-- ValidationError         (no usable text or URL supplied)
    +-- FetchError              (webpage unreachable / non-2xx)
    +-- ImageAnalysisError      (image description failed; never surfaced)
    +-- EmbeddingError          (embedding call failed or unknown shape)
    +-- IndexWriteError         (document store commit failed)
    +-- LLMError                (any LLM API call failure)
    +-- ConfigurationError      (startup / invalid configuration)
    +-- AuthenticationError     (interactive caller not authenticated)

Where each error is caught decides how far it travels: validation and fetch
errors abort a single source, embedding errors only drop one chunk, image
analysis errors degrade to the post's base text, and index write errors
fail the whole ingestion.
"""


class KnowledgeBaseError(Exception):
    """Base exception for all ingestion-engine errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[openai_embedding] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Source-level errors (abort ingestion of one source)
# ---------------------------------------------------------------------------

class ValidationError(KnowledgeBaseError):
    """Raised when a source descriptor has neither usable text nor a fetchable URL."""

    def __init__(
        self,
        message: str = "No text provided or extracted",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class FetchError(KnowledgeBaseError):
    """Raised when a webpage cannot be fetched (network error or non-2xx status).

    Carries the HTTP status code when the server answered.
    """

    def __init__(
        self,
        message: str = "Failed to fetch URL",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._status_code = status_code

    @property
    def status_code(self) -> int | None:
        return self._status_code


# ---------------------------------------------------------------------------
# Degradable errors (caught inside the pipeline)
# ---------------------------------------------------------------------------

class ImageAnalysisError(KnowledgeBaseError):
    """Raised when describing a post image fails.  Always non-fatal."""

    def __init__(
        self,
        message: str = "Image description failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(KnowledgeBaseError):
    """Raised when the embedding service fails or returns an unrecognised shape."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(KnowledgeBaseError):
    """Raised when an LLM API call fails or returns an empty response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Hard failures
# ---------------------------------------------------------------------------

class IndexWriteError(KnowledgeBaseError):
    """Raised when the document store rejects a batch commit."""

    def __init__(
        self,
        message: str = "Index batch commit failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(KnowledgeBaseError):
    """Raised when configuration is invalid or a required provider is missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AuthenticationError(KnowledgeBaseError):
    """Raised when an interactive caller presents no valid credentials."""

    def __init__(
        self,
        message: str = "User not authenticated",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
