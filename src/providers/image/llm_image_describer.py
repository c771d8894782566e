"""Image describer backed by a vision-capable LLM.

Downloads the image referenced by a social post, shrinks it with
:class:`~src.utils.image_preprocessor.ImagePreprocessor`, and asks the LLM
to describe it.  The prompt asks for a factual description with any
visible text transcribed verbatim, since flyers and announcement graphics
usually carry dates, times and places that members will search for.

Every failure is reported as :class:`ImageAnalysisError`; the normalizer
degrades to the post's own text when that happens.
"""

from __future__ import annotations

import httpx
import structlog

from src.interfaces.image_describer import IImageDescriber
from src.interfaces.llm_provider import ILLMProvider
from src.utils.errors import ImageAnalysisError, KnowledgeBaseError
from src.utils.image_preprocessor import ImagePreprocessor

logger = structlog.get_logger(logger_name=__name__)

DESCRIBE_PROMPT = (
    "Describe this image for a church knowledge base. Transcribe any visible "
    "text exactly (event names, dates, times, locations, speakers). Then give "
    "a short factual description of what the image shows. Do not speculate."
)

_DOWNLOAD_TIMEOUT = 20.0
_MAX_IMAGE_BYTES = 20 * 1024 * 1024


class LLMImageDescriber(IImageDescriber):
    """Describes images by URL using an :class:`ILLMProvider` with vision."""

    def __init__(
        self,
        llm: ILLMProvider,
        http_client: httpx.AsyncClient | None = None,
        preprocessor: ImagePreprocessor | None = None,
        prompt: str = DESCRIBE_PROMPT,
    ) -> None:
        self._llm = llm
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(_DOWNLOAD_TIMEOUT), follow_redirects=True
        )
        self._preprocessor = preprocessor or ImagePreprocessor()
        self._prompt = prompt

    async def describe(self, image_url: str) -> str:
        if not self._llm.supports_vision():
            raise ImageAnalysisError(
                message="Configured LLM has no vision support",
                provider_name=self.get_provider_name(),
            )

        image_bytes = await self._download(image_url)
        prepared = self._preprocessor.prepare_for_vision(image_bytes)

        try:
            description = await self._llm.vision_extract(prepared, self._prompt)
        except KnowledgeBaseError as exc:
            raise ImageAnalysisError(
                message=f"Vision call failed: {exc}",
                provider_name=self._llm.get_provider_name(),
            ) from exc

        description = description.strip()
        if not description:
            raise ImageAnalysisError(
                message="Vision model returned an empty description",
                provider_name=self._llm.get_provider_name(),
            )

        logger.info(
            "image_described",
            url=image_url,
            provider=self._llm.get_provider_name(),
            length=len(description),
        )
        return description

    async def _download(self, image_url: str) -> bytes:
        try:
            response = await self._client.get(image_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ImageAnalysisError(
                message=f"Image download failed: HTTP {exc.response.status_code}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise ImageAnalysisError(
                message=f"Image download failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.content
        if not content:
            raise ImageAnalysisError(
                message="Image download returned no bytes",
                provider_name=self.get_provider_name(),
            )
        if len(content) > _MAX_IMAGE_BYTES:
            raise ImageAnalysisError(
                message=f"Image too large ({len(content)} bytes)",
                provider_name=self.get_provider_name(),
            )
        return content

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def get_provider_name(self) -> str:
        return f"llm_image_describer:{self._llm.get_provider_name()}"
