"""In-memory chunk store with selection tracking."""

import logging
import threading
from collections.abc import Iterable, Iterator

from docrewrite.exceptions import ConsistencyError
from docrewrite.ingestion.chunker import chunk_text
from docrewrite.models.chunk import (
    TERMINAL_STATUSES,
    Chunk,
    ChunkPreview,
    ChunkStats,
    ChunkStatus,
)

logger = logging.getLogger(__name__)


class ChunkStore:
    """Authoritative, ordered collection of chunk records.

    Records are immutable and every mutation swaps in a whole new record
    under a lock, so observers never see a half-applied status change.
    The store is written by the selection operations between runs and by
    the orchestrator during a run.

    Selection is tracked with the ``selected`` flag. For pending and
    selected chunks the flag and the status move together. For rewritten
    and failed chunks only the flag moves; their output is kept until
    the chunk is re-armed for another run.

    Args:
        chunks: Chunks indexed contiguously from 1.

    Raises:
        ConsistencyError: If the indices are not exactly ``1..N``.
    """

    def __init__(self, chunks: Iterable[Chunk] = ()) -> None:
        records = list(chunks)
        for expected, chunk in enumerate(records, start=1):
            if chunk.index != expected:
                raise ConsistencyError(
                    f"Chunk indices must be contiguous from 1: expected {expected}, got {chunk.index}"
                )
        self._chunks: dict[int, Chunk] = {chunk.index: chunk for chunk in records}
        self._lock = threading.RLock()

    @classmethod
    def from_text(cls, text: str, max_words: int) -> "ChunkStore":
        """Chunk a text and wrap the result in a new store."""
        return cls(chunk_text(text, max_words))

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[Chunk]:
        return iter(self.chunks())

    def chunks(self) -> list[Chunk]:
        """Return a snapshot of all chunks in index order."""
        with self._lock:
            return [self._chunks[i] for i in sorted(self._chunks)]

    def get(self, index: int) -> Chunk:
        """Return the chunk at ``index``.

        Raises:
            ConsistencyError: If no chunk has that index.
        """
        with self._lock:
            try:
                return self._chunks[index]
            except KeyError:
                raise ConsistencyError(f"No chunk with index {index}") from None

    def replace(self, index: int, chunk: Chunk) -> Chunk:
        """Swap in a new record for ``index``.

        Raises:
            ConsistencyError: If the index is unknown, the record carries a
                different index, or a second chunk would be in progress.
        """
        with self._lock:
            self.get(index)
            if chunk.index != index:
                raise ConsistencyError(
                    f"Cannot store chunk {chunk.index} under index {index}"
                )
            if chunk.status == ChunkStatus.IN_PROGRESS:
                busy = [
                    c.index
                    for c in self._chunks.values()
                    if c.status == ChunkStatus.IN_PROGRESS and c.index != index
                ]
                if busy:
                    raise ConsistencyError(
                        f"Chunk {busy[0]} is already in progress; cannot start chunk {index}"
                    )
            self._chunks[index] = chunk
            return chunk

    # ── Selection ───────────────────────────────────────────────────────────

    def toggle(self, index: int) -> Chunk:
        """Flip whether a chunk is included in the next run."""
        with self._lock:
            chunk = self.get(index)
            if chunk.status == ChunkStatus.PENDING:
                updated = chunk.model_copy(
                    update={"status": ChunkStatus.SELECTED, "selected": True}
                )
            elif chunk.status == ChunkStatus.SELECTED:
                updated = chunk.model_copy(
                    update={"status": ChunkStatus.PENDING, "selected": False}
                )
            else:
                updated = chunk.model_copy(update={"selected": not chunk.selected})
            return self.replace(index, updated)

    def select_all(self) -> None:
        with self._lock:
            for chunk in self.chunks():
                if chunk.status == ChunkStatus.PENDING:
                    self.replace(
                        chunk.index,
                        chunk.model_copy(
                            update={"status": ChunkStatus.SELECTED, "selected": True}
                        ),
                    )
                elif not chunk.selected:
                    self.replace(chunk.index, chunk.model_copy(update={"selected": True}))

    def deselect_all(self) -> None:
        with self._lock:
            for chunk in self.chunks():
                if chunk.status == ChunkStatus.SELECTED:
                    self.replace(
                        chunk.index,
                        chunk.model_copy(
                            update={"status": ChunkStatus.PENDING, "selected": False}
                        ),
                    )
                elif chunk.selected:
                    self.replace(chunk.index, chunk.model_copy(update={"selected": False}))

    def selection(self) -> list[Chunk]:
        """Return the chunks included in the next run, in index order."""
        return [chunk for chunk in self.chunks() if chunk.selected]

    def rearm(self, index: int) -> Chunk:
        """Reset a chunk to ``selected`` so a new run may include it.

        Any previous output or failure reason is discarded.

        Raises:
            ConsistencyError: If the chunk is currently in progress.
        """
        with self._lock:
            chunk = self.get(index)
            if chunk.status == ChunkStatus.IN_PROGRESS:
                raise ConsistencyError(f"Chunk {index} is in progress and cannot be re-armed")
            if chunk.status == ChunkStatus.SELECTED and chunk.selected:
                return chunk
            return self.replace(
                index,
                chunk.model_copy(
                    update={
                        "status": ChunkStatus.SELECTED,
                        "selected": True,
                        "output": None,
                        "error": None,
                    }
                ),
            )

    def rearm_selected(self) -> list[Chunk]:
        """Re-arm every included rewritten or failed chunk.

        Returns:
            The selection after re-arming, in index order.
        """
        with self._lock:
            for chunk in self.chunks():
                if chunk.selected and chunk.status in TERMINAL_STATUSES:
                    self.rearm(chunk.index)
            return self.selection()

    # ── Queries ─────────────────────────────────────────────────────────────

    def rewritten(self) -> list[Chunk]:
        """Return the rewritten chunks in index order."""
        return [c for c in self.chunks() if c.status == ChunkStatus.REWRITTEN]

    def reset(self) -> None:
        """Discard all run results and selections.

        This is the only path that returns rewritten or failed chunks to
        ``pending``.
        """
        with self._lock:
            for chunk in self.chunks():
                self._chunks[chunk.index] = chunk.model_copy(
                    update={
                        "status": ChunkStatus.PENDING,
                        "selected": False,
                        "output": None,
                        "error": None,
                    }
                )
        logger.info("Reset %d chunks to pending", len(self._chunks))

    def stats(self, preview_chars: int = 100) -> ChunkStats:
        """Summarize the store for display.

        Args:
            preview_chars: Length of each chunk's text preview.

        Returns:
            Aggregate counts plus a preview per chunk.
        """
        chunks = self.chunks()
        if not chunks:
            return ChunkStats()

        total_words = sum(c.word_count for c in chunks)
        previews = [
            ChunkPreview(
                index=c.index,
                words=c.word_count,
                status=c.status,
                preview=c.text[:preview_chars] + ("..." if len(c.text) > preview_chars else ""),
            )
            for c in chunks
        ]
        return ChunkStats(
            total_chunks=len(chunks),
            total_words=total_words,
            avg_words_per_chunk=round(total_words / len(chunks)),
            selected_count=sum(1 for c in chunks if c.selected),
            rewritten_count=sum(1 for c in chunks if c.status == ChunkStatus.REWRITTEN),
            failed_count=sum(1 for c in chunks if c.status == ChunkStatus.FAILED),
            chunks=previews,
        )
