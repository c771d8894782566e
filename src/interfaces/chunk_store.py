"""Abstract base class for the chunk document store.

The store persists :class:`~src.models.knowledge.ChunkRecord` objects and
answers the two queries the index writer relies on: which record ids
belong to a URL, and how many there are.  Vector similarity search is the
downstream assistant's concern and is not part of this contract.

Writes happen only through :meth:`IChunkStore.commit`, which applies a
:class:`~src.models.knowledge.WriteBatch` atomically: either every delete
and set in the batch lands, or none does.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.knowledge import ChunkRecord, IndexStats, WriteBatch


# Concrete implementation: SQLiteChunkStore (src/providers/chunk_store/)
class IChunkStore(ABC):
    """Contract for the document store backing the knowledge base."""

    @property
    @abstractmethod
    def max_batch_operations(self) -> int:
        """Largest number of operations a single :meth:`commit` accepts."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if needed.  Safe to call repeatedly."""

    @abstractmethod
    async def find_ids_by_url(self, url: str) -> list[str]:
        """Return the ids of every record whose ``url`` equals *url*."""

    @abstractmethod
    async def get(self, record_id: str) -> ChunkRecord | None:
        """Return the record stored at *record_id*, or ``None``."""

    @abstractmethod
    async def count_by_url(self, url: str) -> int:
        """Return how many records carry *url*."""

    @abstractmethod
    async def commit(self, batch: WriteBatch) -> None:
        """Apply *batch* atomically: deletes first, then sets (create-or-overwrite).

        Raises
        ------
        src.utils.errors.IndexWriteError
            If the batch exceeds :attr:`max_batch_operations` or the
            underlying store rejects it.  Nothing is applied in that case.
        """

    @abstractmethod
    async def get_stats(self) -> IndexStats:
        """Return aggregate counts over the store."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""

    async def close(self) -> None:  # noqa: B027 -- optional hook
        """Release any held resources.  Default is a no-op."""
