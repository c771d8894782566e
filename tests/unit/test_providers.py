"""Unit tests for provider adapters — fetcher, image describer, embeddings, vision LLMs.

HTTP is served by ``httpx.MockTransport``; SDK clients are MagicMocks.
"""

from __future__ import annotations

import io
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from PIL import Image

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.fetch.http_page_fetcher import HttpPageFetcher
from src.providers.image.llm_image_describer import LLMImageDescriber
from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.services.ingestion.embedding_client import extract_embedding
from src.utils.errors import EmbeddingError, FetchError, ImageAnalysisError, LLMError
from src.utils.image_preprocessor import ImagePreprocessor, detect_media_type


def _settings(**overrides) -> Settings:
    """Build a Settings instance with all keys empty unless overridden."""
    defaults = {
        "openai_api_key": "",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "openai_vision_model": "",
        "anthropic_api_key": "",
        "ollama_base_url": "http://ollama.test",
        "ollama_embedding_model": "nomic-embed-text",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _client(handler) -> httpx.AsyncClient:  # noqa: ANN001
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _png_bytes(width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(10, 200, 10)).save(buf, format="PNG")
    return buf.getvalue()


# ======================================================================
# HttpPageFetcher
# ======================================================================


class TestHttpPageFetcher:
    @pytest.mark.asyncio
    async def test_returns_body(self) -> None:
        fetcher = HttpPageFetcher(http_client=_client(lambda r: httpx.Response(200, text="<p>Hi</p>")))
        assert await fetcher.fetch("https://bmbcfamily.com/about-us") == "<p>Hi</p>"

    @pytest.mark.asyncio
    async def test_non_2xx_raises_with_status(self) -> None:
        fetcher = HttpPageFetcher(http_client=_client(lambda r: httpx.Response(503)))
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://bmbcfamily.com/about-us")
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_network_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = HttpPageFetcher(http_client=_client(handler))
        with pytest.raises(FetchError, match="HTTP error fetching"):
            await fetcher.fetch("https://bmbcfamily.com/about-us")

    @pytest.mark.asyncio
    async def test_timeout_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        fetcher = HttpPageFetcher(http_client=_client(handler))
        with pytest.raises(FetchError, match="Timeout"):
            await fetcher.fetch("https://bmbcfamily.com/about-us")


# ======================================================================
# ImagePreprocessor
# ======================================================================


class TestImagePreprocessor:
    def test_small_image_returned_unchanged(self) -> None:
        data = _png_bytes(100, 80)
        assert ImagePreprocessor().prepare_for_vision(data) is data

    def test_large_image_downscaled_to_jpeg(self) -> None:
        data = _png_bytes(2000, 1000)
        prepared = ImagePreprocessor(max_dim=1000).prepare_for_vision(data)

        assert detect_media_type(prepared) == "image/jpeg"
        assert Image.open(io.BytesIO(prepared)).size == (1000, 500)

    def test_unreadable_bytes_raise(self) -> None:
        with pytest.raises(ImageAnalysisError):
            ImagePreprocessor().prepare_for_vision(b"not an image")

    def test_detect_media_type(self, jpeg_bytes: bytes) -> None:
        assert detect_media_type(_png_bytes(2, 2)) == "image/png"
        assert detect_media_type(jpeg_bytes) == "image/jpeg"
        assert detect_media_type(b"GIF89a....") == "image/gif"


# ======================================================================
# LLMImageDescriber
# ======================================================================


def _vision_llm(answer: str = "A banner reading 'Easter Sunday 9am'.", vision: bool = True) -> MagicMock:
    llm = MagicMock(spec=ILLMProvider)
    llm.supports_vision.return_value = vision
    llm.get_provider_name.return_value = "mock-vision"
    llm.vision_extract = AsyncMock(return_value=answer)
    return llm


class TestLLMImageDescriber:
    @pytest.mark.asyncio
    async def test_describes_downloaded_image(self, jpeg_bytes: bytes) -> None:
        llm = _vision_llm()
        describer = LLMImageDescriber(
            llm=llm, http_client=_client(lambda r: httpx.Response(200, content=jpeg_bytes))
        )

        description = await describer.describe("https://cdn.example/flyer.jpg")

        assert description == "A banner reading 'Easter Sunday 9am'."
        sent_bytes, prompt = llm.vision_extract.await_args.args
        assert sent_bytes == jpeg_bytes
        assert "Transcribe any visible text" in prompt

    @pytest.mark.asyncio
    async def test_download_failure(self) -> None:
        describer = LLMImageDescriber(
            llm=_vision_llm(), http_client=_client(lambda r: httpx.Response(404))
        )
        with pytest.raises(ImageAnalysisError, match="HTTP 404"):
            await describer.describe("https://cdn.example/missing.jpg")

    @pytest.mark.asyncio
    async def test_llm_failure_wrapped(self, jpeg_bytes: bytes) -> None:
        llm = _vision_llm()
        llm.vision_extract = AsyncMock(side_effect=LLMError(message="overloaded"))
        describer = LLMImageDescriber(
            llm=llm, http_client=_client(lambda r: httpx.Response(200, content=jpeg_bytes))
        )
        with pytest.raises(ImageAnalysisError, match="overloaded"):
            await describer.describe("https://cdn.example/flyer.jpg")

    @pytest.mark.asyncio
    async def test_empty_description_rejected(self, jpeg_bytes: bytes) -> None:
        describer = LLMImageDescriber(
            llm=_vision_llm(answer="   "),
            http_client=_client(lambda r: httpx.Response(200, content=jpeg_bytes)),
        )
        with pytest.raises(ImageAnalysisError, match="empty description"):
            await describer.describe("https://cdn.example/flyer.jpg")

    @pytest.mark.asyncio
    async def test_llm_without_vision(self) -> None:
        describer = LLMImageDescriber(
            llm=_vision_llm(vision=False), http_client=_client(lambda r: httpx.Response(500))
        )
        with pytest.raises(ImageAnalysisError, match="no vision support"):
            await describer.describe("https://cdn.example/flyer.jpg")


# ======================================================================
# Embedding providers
# ======================================================================


class TestNomicEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_posts_prompt_and_returns_json(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"embedding": [0.1, 0.2, 0.3]})

        provider = NomicEmbeddingProvider(settings=_settings(), http_client=_client(handler))
        response = await provider.embed_raw("hello")

        assert extract_embedding(response) == [0.1, 0.2, 0.3]
        assert str(seen[0].url) == "http://ollama.test/api/embeddings"

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        provider = NomicEmbeddingProvider(
            settings=_settings(), http_client=_client(lambda r: httpx.Response(500))
        )
        with pytest.raises(EmbeddingError, match="HTTP 500"):
            await provider.embed_raw("hello")

    def test_dimension(self) -> None:
        assert NomicEmbeddingProvider(settings=_settings()).get_dimension() == 768
        other = NomicEmbeddingProvider(settings=_settings(ollama_embedding_model="mxbai-embed-large"))
        assert other.get_dimension() == 0


class TestOpenAIEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_returns_sdk_data(self) -> None:
        client = MagicMock()
        client.embeddings.create = AsyncMock(
            return_value=SimpleNamespace(
                data=[SimpleNamespace(embedding=[0.5, 0.25], index=0)],
                usage=SimpleNamespace(total_tokens=3),
            )
        )
        provider = OpenAIEmbeddingProvider(settings=_settings(openai_api_key="sk-test"), client=client)

        response = await provider.embed_raw("hello")

        assert extract_embedding(response) == [0.5, 0.25]
        client.embeddings.create.assert_awaited_once_with(
            input=["hello"], model="text-embedding-3-small"
        )

    def test_metadata(self) -> None:
        provider = OpenAIEmbeddingProvider(
            settings=_settings(openai_api_key="sk-test"), client=MagicMock()
        )
        assert provider.get_dimension() == 1536
        assert provider.get_provider_name() == "openai_embedding"
        assert provider.is_available() is True

    def test_compatible_endpoint_label(self) -> None:
        provider = OpenAIEmbeddingProvider(
            settings=_settings(
                openai_api_key="k",
                openai_base_url="https://api.together.xyz/v1",
                openai_embedding_model="BAAI/bge-base-en-v1.5",
            ),
            client=MagicMock(),
        )
        assert provider.get_provider_name() == "openai-compatible_embedding"
        assert provider.get_dimension() == 768


# ======================================================================
# Vision LLM providers
# ======================================================================


class TestVisionProviders:
    @pytest.mark.asyncio
    async def test_openai_vision_sends_data_uri(self, jpeg_bytes: bytes) -> None:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content="A choir."))],
                usage=None,
            )
        )
        llm = OpenAILLMProvider(settings=_settings(openai_api_key="sk-test"), client=client)

        assert await llm.vision_extract(jpeg_bytes, "describe") == "A choir."
        content = client.chat.completions.create.await_args.kwargs["messages"][0]["content"]
        assert content[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    async def test_openai_empty_response_raises(self, jpeg_bytes: bytes) -> None:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content=""))], usage=None
            )
        )
        llm = OpenAILLMProvider(settings=_settings(openai_api_key="sk-test"), client=client)
        with pytest.raises(LLMError):
            await llm.vision_extract(jpeg_bytes, "describe")

    @pytest.mark.asyncio
    async def test_anthropic_joins_text_blocks(self, jpeg_bytes: bytes) -> None:
        client = MagicMock()
        client.messages.create = AsyncMock(
            return_value=SimpleNamespace(
                content=[
                    SimpleNamespace(type="text", text="Line one."),
                    SimpleNamespace(type="text", text="Line two."),
                ],
                usage=SimpleNamespace(input_tokens=10, output_tokens=5),
            )
        )
        llm = AnthropicLLMProvider(settings=_settings(anthropic_api_key="sk-ant"), client=client)

        assert await llm.vision_extract(jpeg_bytes, "describe") == "Line one.\nLine two."
        blocks = client.messages.create.await_args.kwargs["messages"][0]["content"]
        assert blocks[0]["source"]["media_type"] == "image/jpeg"

    def test_availability_follows_keys(self) -> None:
        assert AnthropicLLMProvider(settings=_settings(), client=MagicMock()).is_available() is False
        assert OpenAILLMProvider(settings=_settings(openai_api_key="k"), client=MagicMock()).is_available()
