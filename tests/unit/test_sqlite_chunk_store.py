"""Unit tests for SQLiteChunkStore — persistence, atomic commits, stats."""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio

from src.models.knowledge import ChunkRecord, WriteBatch
from src.providers.chunk_store.sqlite_chunk_store import SQLiteChunkStore
from src.utils.errors import ConfigurationError, IndexWriteError

_URL = "https://bmbcfamily.com/about-us"


def _record(rid: str, url: str = _URL, index: int = 0, doc_type: str = "webpage") -> ChunkRecord:
    return ChunkRecord(
        id=rid,
        doc_type=doc_type,
        title="About Us",
        url=url,
        text=f"text of {rid}",
        embedding=[0.25, -0.5, 1.0],
        chunk_index=index,
        metadata={"author": "Pastor", "has_image": False},
    )


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> SQLiteChunkStore:
    chunk_store = SQLiteChunkStore(db_path=tmp_path / "kb.db", batch_limit=5)
    await chunk_store.initialize()
    return chunk_store


class TestConstruction:
    def test_rejects_unsafe_table_name(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            SQLiteChunkStore(db_path=tmp_path / "kb.db", table="chunks; DROP TABLE x")

    def test_rejects_non_positive_batch_limit(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            SQLiteChunkStore(db_path=tmp_path / "kb.db", batch_limit=0)

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, store: SQLiteChunkStore) -> None:
        await store.initialize()
        assert (await store.get_stats()).total_chunks == 0


class TestReadWrite:
    @pytest.mark.asyncio
    async def test_round_trip_preserves_fields(self, store: SQLiteChunkStore) -> None:
        original = _record("a1").model_copy(update={"original_post_id": "p9"})
        await store.commit(WriteBatch(records=[original]))

        loaded = await store.get("a1")

        assert loaded is not None
        assert loaded.embedding == [0.25, -0.5, 1.0]
        assert loaded.metadata == {"author": "Pastor", "has_image": False}
        assert loaded.original_post_id == "p9"
        assert loaded.created_at == original.created_at

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store: SQLiteChunkStore) -> None:
        assert await store.get("nope") is None

    @pytest.mark.asyncio
    async def test_find_and_count_by_url(self, store: SQLiteChunkStore) -> None:
        await store.commit(
            WriteBatch(records=[_record("b", index=1), _record("a", index=0), _record("z", url="x")])
        )

        assert await store.find_ids_by_url(_URL) == ["a", "b"]
        assert await store.count_by_url(_URL) == 2
        assert [r.id for r in await store.list_by_url(_URL)] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_upsert_overwrites_existing_id(self, store: SQLiteChunkStore) -> None:
        await store.commit(WriteBatch(records=[_record("post_1")]))
        edited = _record("post_1").model_copy(update={"text": "edited"})
        await store.commit(WriteBatch(records=[edited]))

        loaded = await store.get("post_1")
        assert loaded is not None
        assert loaded.text == "edited"
        assert (await store.get_stats()).total_chunks == 1

    @pytest.mark.asyncio
    async def test_deletes_apply_before_sets(self, store: SQLiteChunkStore) -> None:
        await store.commit(WriteBatch(records=[_record("same")]))
        await store.commit(WriteBatch(delete_ids=["same"], records=[_record("same")]))
        assert await store.get("same") is not None

    @pytest.mark.asyncio
    async def test_empty_batch_is_noop(self, store: SQLiteChunkStore) -> None:
        await store.commit(WriteBatch())
        assert (await store.get_stats()).total_chunks == 0


class TestAtomicity:
    @pytest.mark.asyncio
    async def test_oversized_batch_rejected(self, store: SQLiteChunkStore) -> None:
        batch = WriteBatch(records=[_record(f"r{i}", index=i) for i in range(6)])
        with pytest.raises(IndexWriteError, match="exceeds the limit"):
            await store.commit(batch)
        assert (await store.get_stats()).total_chunks == 0

    @pytest.mark.asyncio
    async def test_failed_batch_rolls_back(self, store: SQLiteChunkStore, tmp_path: Path) -> None:
        await store.commit(WriteBatch(records=[_record("old0"), _record("old1", index=1)]))
        async with aiosqlite.connect(str(tmp_path / "kb.db")) as db:
            await db.execute(
                "CREATE TRIGGER reject_boom BEFORE INSERT ON sermon_chunks "
                "WHEN NEW.id = 'boom' BEGIN SELECT RAISE(ABORT, 'rejected'); END;"
            )
            await db.commit()

        batch = WriteBatch(
            delete_ids=["old0", "old1"],
            records=[_record("new0"), _record("boom", index=1)],
        )
        with pytest.raises(IndexWriteError, match="SQLite commit failed"):
            await store.commit(batch)

        assert await store.find_ids_by_url(_URL) == ["old0", "old1"]
        assert await store.get("new0") is None


class TestStats:
    @pytest.mark.asyncio
    async def test_counts_by_doc_type_and_url(self, store: SQLiteChunkStore) -> None:
        await store.commit(
            WriteBatch(
                records=[
                    _record("w0"),
                    _record("w1", index=1),
                    _record("post_1", url="https://social.example/posts/1", doc_type="social_post"),
                    _record("m0", url=""),
                ]
            )
        )

        stats = await store.get_stats()

        assert stats.total_chunks == 4
        assert stats.total_urls == 2
        assert stats.chunks_by_doc_type == {"webpage": 3, "social_post": 1}
