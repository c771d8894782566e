"""Application settings loaded from environment variables via pydantic-settings.

Two sources, in priority order:

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
  2. ``.env`` in the working directory (local development)

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults apply
when neither source sets a value.  An empty string means "not configured":
provider selection in ``src.bootstrap`` skips providers with empty keys.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CRAWL_URLS: tuple[str, ...] = (
    "https://bmbcfamily.com/about-us",
    "https://bmbcfamily.com/next-steps",
)


class Settings(BaseSettings):
    """Knowledge-base engine settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Embedding / LLM providers ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, etc.)
    openai_embedding_model: str = ""  # defaults to text-embedding-3-small
    openai_vision_model: str = ""  # defaults to gpt-4o-mini
    anthropic_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"
    ollama_embedding_model: str = "nomic-embed-text"
    # 0 disables the dimension check.
    embedding_dimension: int = 0

    # === Chunking ===
    chunk_size: int = 1000
    chunk_overlap: int = 100
    chunk_boundary: str = "character"  # "character" or "word"

    # === Document store ===
    chunk_db_path: str = "data/knowledge_base.db"
    chunk_table: str = "sermon_chunks"
    store_batch_limit: int = 500

    # === Fetching ===
    fetch_timeout_seconds: float = 30.0
    fetch_user_agent: str = "congregation-kb/0.1 (+knowledge base crawler)"

    # === Scheduled crawl ===
    crawl_enabled: bool = False
    crawl_interval_hours: float = 24.0
    crawl_urls: list[str] = list(DEFAULT_CRAWL_URLS)
    config_path: str = "config/config.yaml"

    # === Social posts ===
    post_url_template: str = "https://bethel-metro-social.web.app/posts/{post_id}"
    describe_post_images: bool = True

    # === Trigger authentication ===
    ingest_api_secret: str = ""
    ingest_token_ttl_hours: int = 24
    post_hook_secret: str = ""

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_vision_providers(self) -> list[str]:
        """Return the vision-capable LLM providers that have API keys configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        return providers
