"""Document store implementations for chunk records."""

from src.providers.chunk_store.sqlite_chunk_store import SQLiteChunkStore

__all__ = ["SQLiteChunkStore"]
