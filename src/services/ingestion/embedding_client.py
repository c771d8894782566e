"""Embedding client adapter.

Wraps an :class:`~src.interfaces.embedding_provider.IEmbeddingProvider`
and turns whatever the embedding service answered into a plain
``list[float]``.  Services disagree on the response shape, so
:func:`extract_embedding` accepts each shape seen in practice, checked in
this order:

1. a bare numeric vector: ``[0.1, 0.2, ...]``
2. a list whose first element is a numeric vector: ``[[0.1, 0.2, ...]]``
3. a list whose first element carries an ``embedding`` key or attribute
   (the OpenAI SDK's ``response.data``)
4. a mapping or object carrying an ``embedding`` field (Ollama's native
   ``/api/embeddings`` answer)

Anything else raises :class:`EmbeddingError` with the serialized response
in the message so the unexpected shape shows up in the logs.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from numbers import Real
from typing import Any

import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import EmbeddingError, KnowledgeBaseError

logger = structlog.get_logger(logger_name=__name__)

_MAX_LOGGED_RESPONSE = 2000


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_vector(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) > 0
        and all(_is_number(v) for v in value)
    )


def _embedding_field(value: Any) -> Any:
    """Return ``value["embedding"]`` or ``value.embedding``, else ``None``."""
    if isinstance(value, Mapping):
        return value.get("embedding")
    return getattr(value, "embedding", None)


def _json_default(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if hasattr(value, "__dict__"):
        return vars(value)
    return repr(value)


def _serialize(response: Any) -> str:
    try:
        text = json.dumps(response, default=_json_default)
    except (TypeError, ValueError):
        text = repr(response)
    if len(text) > _MAX_LOGGED_RESPONSE:
        text = text[:_MAX_LOGGED_RESPONSE] + "..."
    return text


def extract_embedding(response: Any) -> list[float]:
    """Normalize an embedding service *response* into a list of floats.

    Raises:
        EmbeddingError: If no supported shape matches.
    """
    candidate: Any = None

    if _is_vector(response):
        candidate = response
    elif isinstance(response, (list, tuple)) and response:
        first = response[0]
        if _is_vector(first):
            candidate = first
        else:
            candidate = _embedding_field(first)
    elif response is not None and not isinstance(response, (str, bytes)):
        candidate = _embedding_field(response)

    if not _is_vector(candidate):
        raise EmbeddingError(
            message=f"Unexpected embedding response format: {_serialize(response)}"
        )
    return [float(v) for v in candidate]


class EmbeddingClient:
    """Embeds one text at a time through a provider.

    Parameters
    ----------
    provider:
        The embedding backend.
    dimension:
        Expected vector length.  ``None`` uses the provider's declared
        dimension; ``0`` (from either source) disables the check.
    """

    def __init__(self, provider: IEmbeddingProvider, dimension: int | None = None) -> None:
        self._provider = provider
        self._dimension = provider.get_dimension() if dimension is None else dimension

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for *text*.

        Raises:
            EmbeddingError: On provider failure, unrecognised response shape,
                or dimension mismatch.
        """
        try:
            response = await self._provider.embed_raw(text)
        except EmbeddingError:
            raise
        except KnowledgeBaseError as exc:
            raise EmbeddingError(
                message=f"Embedding provider failed: {exc.message}",
                provider_name=exc.provider_name or self.provider_name,
            ) from exc
        except Exception as exc:  # noqa: BLE001 -- provider SDKs raise arbitrary types
            raise EmbeddingError(
                message=f"Embedding provider failed: {exc}",
                provider_name=self.provider_name,
            ) from exc

        try:
            vector = extract_embedding(response)
        except EmbeddingError as exc:
            raise EmbeddingError(message=exc.message, provider_name=self.provider_name) from exc

        if self._dimension and len(vector) != self._dimension:
            raise EmbeddingError(
                message=(
                    f"Embedding dimension mismatch: expected {self._dimension}, "
                    f"got {len(vector)}"
                ),
                provider_name=self.provider_name,
            )
        return vector
