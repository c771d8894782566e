"""Content ingestion pipeline for the congregation knowledge base.

Orchestrates the full pipeline: **normalize -> chunk -> embed -> write**.

1. **Normalize** (content_normalizer.py / ContentNormalizer) -- webpages,
   social posts and manual text become plain text with title and URL.
2. **Chunk** (chunker.py / TextChunker) -- fixed-size overlapping windows.
3. **Embed** (embedding_client.py / EmbeddingClient) -- one vector per
   chunk, whatever shape the embedding service answers in.
4. **Write** (index_writer.py / IndexWriter) -- replace-all per URL for
   pages, upsert by id for posts.

The trigger adapters (crawl_scheduler.py, post_trigger.py and the HTTP
routes) all funnel into :class:`IngestionService`.
"""

from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.content_normalizer import ContentNormalizer
from src.services.ingestion.embedding_client import EmbeddingClient, extract_embedding
from src.services.ingestion.index_writer import IndexWriter
from src.services.ingestion.ingestion_service import IngestionService

__all__ = [
    "ContentNormalizer",
    "EmbeddingClient",
    "IndexWriter",
    "IngestionService",
    "TextChunker",
    "extract_embedding",
]
