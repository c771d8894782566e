"""SQLite-backed chunk document store.

Persists :class:`~src.models.knowledge.ChunkRecord` rows to a local SQLite
database (``data/knowledge_base.db`` by default) using ``aiosqlite`` for
async I/O.  Embeddings and metadata are stored as JSON text columns.

Each :meth:`SQLiteChunkStore.commit` runs inside one transaction: deletes
are applied first, then every record is inserted or overwritten at its id.
Any SQLite error rolls the whole batch back and surfaces as
:class:`~src.utils.errors.IndexWriteError`.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.chunk_store import IChunkStore
from src.models.knowledge import ChunkRecord, IndexStats, WriteBatch
from src.utils.errors import ConfigurationError, IndexWriteError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/knowledge_base.db")
_DEFAULT_TABLE = "sermon_chunks"
# Same cap as the hosted document store this replaces.
DEFAULT_BATCH_LIMIT = 500

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS {table} (
    id               TEXT    PRIMARY KEY,
    doc_type         TEXT    NOT NULL,
    title            TEXT    NOT NULL DEFAULT 'Untitled',
    url              TEXT    NOT NULL DEFAULT '',
    text             TEXT    NOT NULL,
    embedding        TEXT    NOT NULL,
    chunk_index      INTEGER NOT NULL,
    metadata         TEXT    NOT NULL DEFAULT '{{}}',
    created_at       TEXT    NOT NULL,
    original_post_id TEXT
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_{table}_url ON {table}(url);",
    "CREATE INDEX IF NOT EXISTS idx_{table}_doc_type ON {table}(doc_type);",
]

_UPSERT_SQL = """\
INSERT INTO {table}
    (id, doc_type, title, url, text, embedding, chunk_index, metadata, created_at,
     original_post_id)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET doc_type         = excluded.doc_type,
              title            = excluded.title,
              url              = excluded.url,
              text             = excluded.text,
              embedding        = excluded.embedding,
              chunk_index      = excluded.chunk_index,
              metadata         = excluded.metadata,
              created_at       = excluded.created_at,
              original_post_id = excluded.original_post_id;
"""

_SELECT_COLUMNS = (
    "id, doc_type, title, url, text, embedding, chunk_index, metadata, created_at, "
    "original_post_id"
)


class SQLiteChunkStore(IChunkStore):
    """SQLite-backed chunk persistence with atomic batch commits."""

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        table: str = _DEFAULT_TABLE,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
    ) -> None:
        if not _TABLE_NAME_RE.match(table):
            raise ConfigurationError(
                message=f"Invalid chunk table name: {table!r}",
                provider_name=self.get_provider_name(),
            )
        if batch_limit <= 0:
            raise ConfigurationError(
                message=f"batch_limit must be positive, got {batch_limit}",
                provider_name=self.get_provider_name(),
            )
        self._db_path = Path(db_path)
        self._table = table
        self._batch_limit = batch_limit

    @property
    def max_batch_operations(self) -> int:
        return self._batch_limit

    async def initialize(self) -> None:
        """Create the chunk table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL.format(table=self._table))
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql.format(table=self._table))
            await db.commit()
        logger.info("chunk_store_initialized", path=str(self._db_path), table=self._table)

    async def find_ids_by_url(self, url: str) -> list[str]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"SELECT id FROM {self._table} WHERE url = ? ORDER BY chunk_index",  # noqa: S608
                (url,),
            )
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def get(self, record_id: str) -> ChunkRecord | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_SELECT_COLUMNS} FROM {self._table} WHERE id = ?",  # noqa: S608
                (record_id,),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_record(dict(row))

    async def list_by_url(self, url: str) -> list[ChunkRecord]:
        """Return every record for *url* ordered by ``chunk_index``."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_SELECT_COLUMNS} FROM {self._table} "  # noqa: S608
                "WHERE url = ? ORDER BY chunk_index",
                (url,),
            )
            rows = await cursor.fetchall()
        return [_row_to_record(dict(r)) for r in rows]

    async def count_by_url(self, url: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"SELECT COUNT(*) FROM {self._table} WHERE url = ?",  # noqa: S608
                (url,),
            )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def commit(self, batch: WriteBatch) -> None:
        if batch.operation_count == 0:
            return
        if batch.operation_count > self._batch_limit:
            raise IndexWriteError(
                message=(
                    f"Batch of {batch.operation_count} operations exceeds the "
                    f"limit of {self._batch_limit}"
                ),
                provider_name=self.get_provider_name(),
            )

        upsert_sql = _UPSERT_SQL.format(table=self._table)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                try:
                    if batch.delete_ids:
                        await db.executemany(
                            f"DELETE FROM {self._table} WHERE id = ?",  # noqa: S608
                            [(record_id,) for record_id in batch.delete_ids],
                        )
                    if batch.records:
                        await db.executemany(
                            upsert_sql, [_record_to_row(r) for r in batch.records]
                        )
                    await db.commit()
                except aiosqlite.Error:
                    await db.rollback()
                    raise
        except aiosqlite.Error as exc:
            raise IndexWriteError(
                message=f"SQLite commit failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug(
            "chunk_batch_committed",
            deletes=len(batch.delete_ids),
            sets=len(batch.records),
        )

    async def get_stats(self) -> IndexStats:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"SELECT doc_type, COUNT(*) FROM {self._table} GROUP BY doc_type"  # noqa: S608
            )
            by_type_rows = await cursor.fetchall()
            cursor = await db.execute(
                f"SELECT COUNT(DISTINCT url) FROM {self._table} WHERE url != ''"  # noqa: S608
            )
            url_row = await cursor.fetchone()

        by_type = {row[0]: int(row[1]) for row in by_type_rows}
        return IndexStats(
            total_chunks=sum(by_type.values()),
            total_urls=int(url_row[0]) if url_row else 0,
            chunks_by_doc_type=by_type,
        )

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return "sqlite_chunk_store"


def _record_to_row(record: ChunkRecord) -> tuple[Any, ...]:
    return (
        record.id,
        record.doc_type,
        record.title,
        record.url,
        record.text,
        json.dumps(record.embedding),
        record.chunk_index,
        json.dumps(record.metadata, default=str),
        record.created_at.isoformat(),
        record.original_post_id,
    )


def _row_to_record(row: dict[str, Any]) -> ChunkRecord:
    row["embedding"] = json.loads(row["embedding"])
    row["metadata"] = json.loads(row["metadata"] or "{}")
    return ChunkRecord.model_validate(row)
