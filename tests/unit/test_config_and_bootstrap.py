"""Unit tests for config loading, crawl URL resolution and component assembly."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.bootstrap import build_components, build_embedding_provider, build_vision_llm
from src.config.loader import load_config, resolve_crawl_urls
from src.config.settings import DEFAULT_CRAWL_URLS, Settings
from src.services.ingestion.ingestion_service import IngestionService
from src.utils.errors import ConfigurationError
from tests.conftest import FakeEmbeddingProvider


def _settings(tmp_path: Path, **overrides) -> Settings:
    defaults = {
        "openai_api_key": "",
        "anthropic_api_key": "",
        "ollama_base_url": "http://ollama.test",
        "chunk_db_path": str(tmp_path / "kb.db"),
        "config_path": str(tmp_path / "missing.yaml"),
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestLoadConfig:
    def test_missing_file_uses_settings(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path, chunk_size=800)
        config = load_config(str(tmp_path / "nope.yaml"), settings=settings)

        assert config["chunking"]["chunk_size"] == 800
        assert config["crawl"]["urls"] == list(DEFAULT_CRAWL_URLS)

    def test_yaml_urls_win_without_env_override(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("CRAWL_URLS", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(
            "crawl:\n  urls:\n    - https://a.example/\n    - https://b.example/\n"
            "custom:\n  kept: true\n"
        )

        config = load_config(str(path), settings=_settings(tmp_path))

        assert config["crawl"]["urls"] == ["https://a.example/", "https://b.example/"]
        assert config["custom"] == {"kept": True}

    def test_env_urls_override_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRAWL_URLS", '["https://env.example/"]')
        path = tmp_path / "config.yaml"
        path.write_text("crawl:\n  urls:\n    - https://a.example/\n")

        config = load_config(str(path), settings=Settings(config_path=str(path)))

        assert config["crawl"]["urls"] == ["https://env.example/"]

    def test_resolve_crawl_urls_dedupes_in_order(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("CRAWL_URLS", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(
            "crawl:\n  urls:\n    - https://b.example/\n    - ' https://a.example/ '\n"
            "    - https://b.example/\n    - ''\n"
        )

        urls = resolve_crawl_urls(_settings(tmp_path, config_path=str(path)))

        assert urls == ["https://b.example/", "https://a.example/"]


class TestProviderSelection:
    def test_openai_preferred_when_key_set(self, tmp_path: Path) -> None:
        provider = build_embedding_provider(_settings(tmp_path, openai_api_key="sk-test"))
        assert provider.get_provider_name() == "openai_embedding"

    def test_falls_back_to_nomic(self, tmp_path: Path) -> None:
        with patch(
            "src.bootstrap.NomicEmbeddingProvider.is_available", return_value=True
        ):
            provider = build_embedding_provider(_settings(tmp_path))
        assert provider.get_provider_name() == "nomic_embedding"

    def test_no_provider_raises(self, tmp_path: Path) -> None:
        with patch(
            "src.bootstrap.NomicEmbeddingProvider.is_available", return_value=False
        ), pytest.raises(ConfigurationError):
            build_embedding_provider(_settings(tmp_path))

    def test_vision_llm_priority(self, tmp_path: Path) -> None:
        both = _settings(tmp_path, anthropic_api_key="sk-ant", openai_api_key="sk-oa")
        assert build_vision_llm(both).get_provider_name() == "anthropic"
        only_openai = _settings(tmp_path, openai_api_key="sk-oa")
        assert build_vision_llm(only_openai).get_provider_name() == "openai"
        assert build_vision_llm(_settings(tmp_path)) is None


class TestBuildComponents:
    @pytest.mark.asyncio
    async def test_wires_service_and_registry(self, tmp_path: Path) -> None:
        components = build_components(
            _settings(tmp_path, chunk_boundary="WORD"),
            embedding_provider=FakeEmbeddingProvider(),
        )
        try:
            assert isinstance(components["ingestion_service"], IngestionService)
            assert components["provider_registry"]["embedding"] == "fake-embedding"
            assert components["provider_registry"]["vision_llm"] is None
            assert components["provider_registry"]["chunk_store"] == "sqlite_chunk_store"
            assert components["crawl_scheduler"].urls == list(DEFAULT_CRAWL_URLS)
        finally:
            await components["http_client"].aclose()

    def test_invalid_chunk_window_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            build_components(
                _settings(tmp_path, chunk_size=100, chunk_overlap=100),
                embedding_provider=MagicMock(spec=FakeEmbeddingProvider),
            )
