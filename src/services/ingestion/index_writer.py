"""Index writer enforcing per-source consistency in the chunk store.

Two write modes:

**replace-all** (webpages and manual text)
    Every recrawl produces a fresh generation of chunks with fresh ids, so
    the previous generation for the same ``url`` must go.  The writer looks
    up the existing ids, then commits the deletes followed by the new
    records.  When everything fits in the store's batch limit this is one
    atomic commit and readers never observe a mix of generations.  Larger
    sets are split into consecutive batches of at most the limit, deletes
    first; a failure part way through can then leave a partial state,
    which the next successful recrawl repairs.

**upsert-single** (social posts)
    One record at a deterministic id, created or overwritten in place.

An empty ``url`` is not a recrawl key: records without one are inserted
without deleting anything.
"""

from __future__ import annotations

import structlog

from src.interfaces.chunk_store import IChunkStore
from src.models.knowledge import ChunkRecord, WriteBatch

logger = structlog.get_logger(logger_name=__name__)


class IndexWriter:
    """Writes chunk records through an :class:`IChunkStore`."""

    def __init__(self, store: IChunkStore) -> None:
        self._store = store

    async def replace_all(self, url: str, records: list[ChunkRecord]) -> int:
        """Replace every record stored under *url* with *records*.

        Returns:
            The number of previously stored records that were deleted.
        """
        delete_ids = await self._store.find_ids_by_url(url) if url else []
        await self._commit_operations(delete_ids, records)
        logger.info(
            "index_replace_complete",
            url=url,
            deleted=len(delete_ids),
            written=len(records),
        )
        return len(delete_ids)

    async def upsert_single(self, record: ChunkRecord) -> None:
        """Create or overwrite *record* at its id."""
        await self._store.commit(WriteBatch(records=[record]))
        logger.info("index_upsert_complete", record_id=record.id, url=record.url)

    async def delete_url(self, url: str) -> int:
        """Delete every record stored under *url*.  Returns the count removed."""
        if not url:
            return 0
        delete_ids = await self._store.find_ids_by_url(url)
        await self._commit_operations(delete_ids, [])
        logger.info("index_url_deleted", url=url, deleted=len(delete_ids))
        return len(delete_ids)

    async def _commit_operations(
        self, delete_ids: list[str], records: list[ChunkRecord]
    ) -> None:
        for batch in plan_batches(delete_ids, records, self._store.max_batch_operations):
            await self._store.commit(batch)


def plan_batches(
    delete_ids: list[str], records: list[ChunkRecord], limit: int
) -> list[WriteBatch]:
    """Split deletes-then-sets into ordered batches of at most *limit* operations.

    Operation order is preserved across batches: all deletes come before
    any set, and a batch may hold the tail of the deletes together with
    the head of the records.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    batches: list[WriteBatch] = []
    pending_deletes = list(delete_ids)
    pending_records = list(records)
    while pending_deletes or pending_records:
        take_deletes = pending_deletes[:limit]
        pending_deletes = pending_deletes[len(take_deletes):]
        room = limit - len(take_deletes)
        take_records = pending_records[:room]
        pending_records = pending_records[len(take_records):]
        batches.append(WriteBatch(delete_ids=take_deletes, records=take_records))
    return batches
