"""Tests for the chunk store and selection tracking."""

import pytest

from docrewrite.exceptions import ConsistencyError
from docrewrite.models.chunk import Chunk, ChunkStatus
from docrewrite.storage.chunk_store import ChunkStore


@pytest.fixture
def store() -> ChunkStore:
    return ChunkStore.from_text("w1 w2 w3 w4 w5 w6 w7 w8", max_words=2)


def _mark_rewritten(store: ChunkStore, index: int, output: str) -> None:
    chunk = store.get(index)
    store.replace(
        index,
        chunk.model_copy(update={"status": ChunkStatus.REWRITTEN, "output": output}),
    )


class TestChunkStoreConstruction:
    def test_from_text(self, store: ChunkStore) -> None:
        assert len(store) == 4
        assert [c.index for c in store] == [1, 2, 3, 4]

    def test_empty_store(self) -> None:
        store = ChunkStore()
        assert len(store) == 0
        assert store.selection() == []

    def test_rejects_gaps_in_indices(self) -> None:
        chunks = [
            Chunk(index=1, text="a", word_count=1),
            Chunk(index=3, text="b", word_count=1),
        ]
        with pytest.raises(ConsistencyError):
            ChunkStore(chunks)

    def test_rejects_unordered_indices(self) -> None:
        chunks = [
            Chunk(index=2, text="a", word_count=1),
            Chunk(index=1, text="b", word_count=1),
        ]
        with pytest.raises(ConsistencyError):
            ChunkStore(chunks)


class TestGetAndReplace:
    def test_get_unknown_index(self, store: ChunkStore) -> None:
        with pytest.raises(ConsistencyError):
            store.get(99)

    def test_replace_swaps_whole_record(self, store: ChunkStore) -> None:
        before = store.get(2)
        store.replace(2, before.model_copy(update={"status": ChunkStatus.SELECTED}))
        assert store.get(2).status == ChunkStatus.SELECTED
        assert before.status == ChunkStatus.PENDING

    def test_replace_index_mismatch(self, store: ChunkStore) -> None:
        with pytest.raises(ConsistencyError):
            store.replace(1, store.get(2))

    def test_only_one_chunk_in_progress(self, store: ChunkStore) -> None:
        store.replace(1, store.get(1).model_copy(update={"status": ChunkStatus.IN_PROGRESS}))
        with pytest.raises(ConsistencyError):
            store.replace(2, store.get(2).model_copy(update={"status": ChunkStatus.IN_PROGRESS}))


class TestSelection:
    def test_toggle_pending_selects(self, store: ChunkStore) -> None:
        chunk = store.toggle(3)
        assert chunk.status == ChunkStatus.SELECTED
        assert chunk.selected is True
        assert [c.index for c in store.selection()] == [3]

    def test_toggle_twice_returns_to_pending(self, store: ChunkStore) -> None:
        store.toggle(3)
        chunk = store.toggle(3)
        assert chunk.status == ChunkStatus.PENDING
        assert store.selection() == []

    def test_toggle_does_not_touch_other_chunks(self, store: ChunkStore) -> None:
        _mark_rewritten(store, 1, "OUT")
        before = {c.index: c for c in store.chunks() if c.index != 3}
        store.toggle(3)
        after = {c.index: c for c in store.chunks() if c.index != 3}
        assert before == after

    def test_toggle_rewritten_keeps_output(self, store: ChunkStore) -> None:
        _mark_rewritten(store, 2, "REWRITTEN")
        chunk = store.toggle(2)
        assert chunk.status == ChunkStatus.REWRITTEN
        assert chunk.output == "REWRITTEN"
        assert chunk.selected is True
        chunk = store.toggle(2)
        assert chunk.selected is False
        assert chunk.output == "REWRITTEN"

    def test_select_all(self, store: ChunkStore) -> None:
        _mark_rewritten(store, 4, "OUT")
        store.select_all()
        assert [c.index for c in store.selection()] == [1, 2, 3, 4]
        assert store.get(1).status == ChunkStatus.SELECTED
        assert store.get(4).status == ChunkStatus.REWRITTEN
        assert store.get(4).output == "OUT"

    def test_deselect_all(self, store: ChunkStore) -> None:
        _mark_rewritten(store, 4, "OUT")
        store.select_all()
        store.deselect_all()
        assert store.selection() == []
        assert store.get(1).status == ChunkStatus.PENDING
        assert store.get(4).status == ChunkStatus.REWRITTEN
        assert store.get(4).output == "OUT"


class TestRearmAndReset:
    def test_rearm_clears_output(self, store: ChunkStore) -> None:
        _mark_rewritten(store, 2, "OLD")
        chunk = store.rearm(2)
        assert chunk.status == ChunkStatus.SELECTED
        assert chunk.selected is True
        assert chunk.output is None

    def test_rearm_in_progress_rejected(self, store: ChunkStore) -> None:
        store.replace(1, store.get(1).model_copy(update={"status": ChunkStatus.IN_PROGRESS}))
        with pytest.raises(ConsistencyError):
            store.rearm(1)

    def test_rearm_selected_only_touches_included(self, store: ChunkStore) -> None:
        _mark_rewritten(store, 1, "ONE")
        _mark_rewritten(store, 2, "TWO")
        store.toggle(2)
        store.toggle(3)
        selection = store.rearm_selected()
        assert [c.index for c in selection] == [2, 3]
        assert all(c.status == ChunkStatus.SELECTED for c in selection)
        assert store.get(1).output == "ONE"

    def test_reset_discards_everything(self, store: ChunkStore) -> None:
        _mark_rewritten(store, 1, "ONE")
        store.toggle(2)
        store.reset()
        for chunk in store:
            assert chunk.status == ChunkStatus.PENDING
            assert chunk.output is None
            assert chunk.selected is False


class TestStats:
    def test_stats_counts(self, store: ChunkStore) -> None:
        _mark_rewritten(store, 1, "ONE")
        store.toggle(2)
        stats = store.stats()
        assert stats.total_chunks == 4
        assert stats.total_words == 8
        assert stats.avg_words_per_chunk == 2
        assert stats.selected_count == 1
        assert stats.rewritten_count == 1
        assert stats.failed_count == 0
        assert stats.chunks[0].preview == "w1 w2"

    def test_preview_truncated(self) -> None:
        store = ChunkStore.from_text("abcdefghij " * 5, max_words=10)
        stats = store.stats(preview_chars=8)
        assert stats.chunks[0].preview == "abcdefgh..."

    def test_empty_stats(self) -> None:
        assert ChunkStore().stats().total_chunks == 0
